"""Input sources for the shell: file descriptors and strings, with pushback,
echoing, null filtering and command history logging."""

from __future__ import annotations

import abc
import contextlib
import errno
import os
import sys
from typing import BinaryIO, List, Optional, Union

from esshell.errors import fail
from esshell.fds import FdManager, FdRef

EOF = -1
"""The value :meth:`Input.get` returns at end of input."""

MAXUNGET = 2
"""The most characters that may be pushed back at once."""

BUFSIZE = 4096
"""How many bytes a descriptor input asks for in one read."""


def _write_diagnostic(stream: Optional[BinaryIO], data: bytes) -> None:
    if stream is None:
        stream = getattr(sys.stderr, "buffer", None)
        if stream is None:
            sys.stderr.write(data.decode("utf-8", errors="replace"))
            sys.stderr.flush()
            return
    stream.write(data)
    with contextlib.suppress(AttributeError, ValueError):
        stream.flush()


class History:
    """The file that interactive command lines are appended to."""

    def __init__(
        self, path: Optional[str] = None, *, diagnostics: Optional[BinaryIO] = None
    ) -> None:
        self.path = path
        self.disabled = False
        self._fd: Optional[int] = None
        self._diagnostics = diagnostics

    def set_file(self, path: Optional[str]) -> None:
        """Switch to a new history file; None stops logging."""
        if self._fd is not None:
            with contextlib.suppress(OSError):
                os.close(self._fd)
            self._fd = None
        self.path = path

    def log(self, data: Union[bytes, str]) -> bool:
        """Append a command line to the history file.

        Lines that are empty or comments, after leading blanks, are not
        logged.  Returns True if the line was written.
        """
        if self.path is None or self.disabled:
            return False
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self._fd is None:
            try:
                self._fd = os.open(
                    self.path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o666
                )
            except OSError as exc:
                message = f"history({self.path}): {os.strerror(exc.errno or errno.EIO)}\n"
                _write_diagnostic(self._diagnostics, message.encode("utf-8"))
                self.path = None
                return False
        for c in data:
            if c in (ord("#"), ord("\n")):
                return False
            if c not in (ord(" "), ord("\t")):
                break
        os.write(self._fd, data)
        return True


class Input(abc.ABC):
    """A source of input characters, returned as byte values or :data:`EOF`.

    Null characters are dropped with a warning.  With ``echo`` each character
    read is copied to the diagnostics stream.
    """

    def __init__(
        self,
        name: str,
        *,
        interactive: bool = False,
        echo: bool = False,
        diagnostics: Optional[BinaryIO] = None,
    ) -> None:
        self.name = name
        self.interactive = interactive
        self.echo = echo
        self.lineno = 1
        self.ignore_eof = False
        self._diagnostics = diagnostics
        self._buf = b""
        self._pos = 0
        self._pushback: List[int] = []
        self._closed = False

    @abc.abstractmethod
    def _fill(self) -> bytes:
        """Return the next block of input, or an empty block at end of input."""

    def _locate(self, message: str) -> str:
        if self.interactive:
            return message
        return f"{self.name}:{self.lineno}: {message}"

    def _warn(self, message: str) -> None:
        text = f"warning: {self._locate(message)}\n"
        _write_diagnostic(self._diagnostics, text.encode("utf-8"))

    def _next(self) -> int:
        if self._pushback:
            return self._pushback.pop()
        if self._pos < len(self._buf):
            c = self._buf[self._pos]
            self._pos += 1
            return c
        data = self._fill()
        if not data:
            return EOF
        self._buf = data
        self._pos = 1
        return data[0]

    def get(self) -> int:
        """Return the next character, or EOF."""
        fresh = not self._pushback
        while True:
            c = self._next()
            if c != 0:
                break
            self._warn("null character ignored")
        if self.echo and fresh and c != EOF:
            _write_diagnostic(self._diagnostics, bytes([c]))
        return c

    def unget(self, c: int) -> None:
        """Push a character back so that the next :meth:`get` returns it."""
        if self._pushback:
            if len(self._pushback) >= MAXUNGET:
                raise ValueError(f"at most {MAXUNGET} characters may be pushed back")
            self._pushback.append(c)
        elif self._pos > 0 and self._buf[self._pos - 1] == c and not self.echo:
            self._pos -= 1
        else:
            self._pushback.append(c)

    def _cleanup(self) -> None:
        """Release whatever the source holds."""

    def close(self) -> None:
        """Release the input source; closing twice does nothing."""
        if self._closed:
            return
        self._closed = True
        self._cleanup()

    def __enter__(self) -> "Input":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class FdInput(Input):
    """Input read from a file descriptor, which is closed at end of input.

    When interactive, each block read is logged to ``history``.  If an
    :class:`FdManager` is given, the descriptor is reserved with it.
    """

    def __init__(
        self,
        fd: int,
        name: Optional[str] = None,
        *,
        interactive: bool = False,
        echo: bool = False,
        diagnostics: Optional[BinaryIO] = None,
        history: Optional[History] = None,
        fds: Optional[FdManager] = None,
        bufsize: int = BUFSIZE,
    ) -> None:
        super().__init__(
            f"fd {fd}" if name is None else name,
            interactive=interactive,
            echo=echo,
            diagnostics=diagnostics,
        )
        if bufsize < 1:
            raise ValueError("buffer size must be positive")
        self.history = history
        self._bufsize = bufsize
        self._ref = FdRef(fd)
        self._fds = fds
        if fds is not None:
            fds.register(self._ref, True)

    @property
    def fd(self) -> Optional[int]:
        """The descriptor being read, or None once it has been closed."""
        return self._ref.fd

    def _at_end(self) -> None:
        if self.ignore_eof:
            return
        fd = self._ref.fd
        if fd is not None:
            with contextlib.suppress(OSError):
                os.close(fd)
        self._ref.fd = None
        self.interactive = False

    def _fill(self) -> bytes:
        fd = self._ref.fd
        if fd is None:
            return b""
        try:
            data = os.read(fd, self._bufsize)
        except OSError as exc:
            self._at_end()
            fail("$&parse", f"{self.name}: {os.strerror(exc.errno or errno.EIO)}")
        if not data:
            self._at_end()
            return b""
        if self.interactive and self.history is not None:
            self.history.log(data)
        return data

    def _cleanup(self) -> None:
        if self._fds is not None:
            self._fds.unregister(self._ref)
        fd = self._ref.fd
        if fd is not None:
            with contextlib.suppress(OSError):
                os.close(fd)
            self._ref.fd = None


class StringInput(Input):
    """Input read from a string; the string itself names the source by default."""

    def __init__(
        self,
        text: str,
        name: Optional[str] = None,
        *,
        interactive: bool = False,
        echo: bool = False,
        diagnostics: Optional[BinaryIO] = None,
    ) -> None:
        super().__init__(
            text if name is None else name,
            interactive=interactive,
            echo=echo,
            diagnostics=diagnostics,
        )
        self._buf = text.encode("utf-8")

    def _fill(self) -> bytes:
        return b""