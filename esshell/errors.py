"""Exceptions raised by the shell: user-catchable exceptions and errors."""

from __future__ import annotations

from typing import Any, Iterable, NoReturn


class EsException(Exception):
    """A shell exception carrying a non-empty list of terms.

    The first term names the exception (``error``, ``return``, ``break``,
    ``eof``, ``exit`` and so on); the rest are its arguments.
    """

    def __init__(self, terms: Iterable[Any]) -> None:
        self.terms = list(terms)
        if not self.terms:
            raise ValueError("an exception needs at least one term")
        super().__init__(*self.terms)

    @property
    def name(self) -> str:
        """The name of the exception: its first term as a string."""
        return str(self.terms[0])

    @property
    def rest(self) -> list:
        """The terms that follow the exception's name."""
        return self.terms[1:]

    def __str__(self) -> str:
        return " ".join(str(term) for term in self.terms)


class EsError(EsException):
    """The ``error`` exception: where it came from and what went wrong."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        self.message = message
        super().__init__(["error", source, message])


def fail(source: str, message: str) -> NoReturn:
    """Raise a user-catchable error originating from ``source``."""
    raise EsError(source, message)