"""Terms, lists of terms, parse trees, closures and bindings."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, Optional

from esshell.errors import fail


class NodeKind(enum.Enum):
    """The kinds of node in a parse tree."""

    ASSIGN = "Assign"
    CALL = "Call"
    CLOSURE = "Closure"
    CONCAT = "Concat"
    FOR = "For"
    LAMBDA = "Lambda"
    LET = "Let"
    LIST = "List"
    LOCAL = "Local"
    MATCH = "Match"
    EXTRACT = "Extract"
    PRIM = "Prim"
    QWORD = "Qword"
    THUNK = "Thunk"
    VAR = "Var"
    VARSUB = "Varsub"
    WORD = "Word"
    REDIR = "Redir"
    PIPE = "Pipe"


@dataclass
class Tree:
    """A parse tree node.

    Word, quoted word and primitive nodes hold a string in ``car``; the
    other kinds hold subtrees in ``car`` and ``cdr``.  A list is a chain of
    LIST nodes whose ``car`` is an element and ``cdr`` the rest.
    """

    kind: NodeKind
    car: object = None
    cdr: Optional["Tree"] = None


@dataclass(eq=False, repr=False)
class Closure:
    """A tree together with the lexical bindings it was created in."""

    tree: Optional[Tree] = None
    binding: Optional["Binding"] = None

    def __repr__(self) -> str:
        kind = None if self.tree is None else self.tree.kind.name
        return f"<Closure {kind} at {id(self):#x}>"


@dataclass(frozen=True)
class Term:
    """A single word of a list: either a string or a closure."""

    text: Optional[str] = None
    closure: Optional[Closure] = None

    def __str__(self) -> str:
        if self.text is not None:
            return self.text
        if self.closure is None:
            return ""
        from esshell.conv import format_closure

        return format_closure(self.closure, False)


@dataclass
class Binding:
    """A link in a chain of name-to-list bindings; the head is innermost."""

    name: str
    defn: list = field(default_factory=list)
    next: Optional["Binding"] = None

    def lookup(self, name: str) -> Optional[list]:
        """Return the definition of the nearest binding of ``name``, or None."""
        for bound, defn in self:
            if bound == name:
                return defn
        return None

    def __iter__(self) -> Iterator[tuple]:
        binding: Optional[Binding] = self
        while binding is not None:
            yield binding.name, binding.defn
            binding = binding.next


def nth(terms: list, n: int) -> Optional[Term]:
    """Return the n-th term of a list, counting from 1, or None."""
    if n < 1 or n > len(terms):
        return None
    return terms[n - 1]


def sortlist(terms: list) -> list:
    """Return the list sorted by the string value of its terms."""
    if len(terms) <= 1:
        return terms
    return [Term(text) for text in sorted(str(term) for term in terms)]


def reverse_bindings(binding: Optional[Binding]) -> Optional[Binding]:
    """Return a new chain holding the same bindings in reverse order."""
    if binding is None:
        return None
    result: Optional[Binding] = None
    for name, defn in binding:
        result = Binding(name, defn, result)
    return result


def _list_items(tree: Optional[Tree]) -> Iterator[Tree]:
    while tree is not None:
        yield tree.car
        tree = tree.cdr


def _atoi(text: str) -> int:
    text = text.lstrip(" \t\n\v\f\r")
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    digits = ""
    for ch in text:
        if not ("0" <= ch <= "9"):
            break
        digits += ch
    return sign * int(digits) if digits else 0


# closures currently being rebuilt, innermost last
_chain: list = []


def _extract(tree: Optional[Tree], bindings: Optional[Binding]) -> Optional[Binding]:
    for defn in _list_items(tree):
        if defn is None:
            continue
        name = defn.car
        words = list(_list_items(defn.cdr))
        words.reverse()
        values = []
        remaining = iter(words)
        for word in remaining:
            if word.kind is NodeKind.PRIM:
                prim = word.car
                if prim != "nestedbinding":
                    fail("$&parse", f"bad unquoted primitive in %closure: $&{prim}")
                count_word = next(remaining, None)
                if count_word is None or count_word.kind is not NodeKind.WORD:
                    fail("$&parse", "improper use of $&nestedbinding")
                count = _atoi(count_word.car)
                if count < 0:
                    fail("$&parse", "improper use of $&nestedbinding")
                if count >= len(_chain):
                    fail("$&parse", f"bad count in $&nestedbinding: {count}")
                values.append(Term(closure=_chain[-1 - count]))
            else:
                values.append(Term(word.car))
        values.reverse()
        bindings = Binding(name.car, values, bindings)
    return bindings


def _unwrap(tree: Tree) -> Tree:
    if tree.kind is NodeKind.LIST and tree.cdr is None:
        return tree.car
    return tree


def extract_bindings(tree: Tree) -> Closure:
    """Turn a parsed ``%closure(...)`` form into a Closure with its bindings."""
    tree = _unwrap(tree)
    closure = Closure()
    bindings: Optional[Binding] = None
    _chain.append(closure)
    try:
        while tree.kind is NodeKind.CLOSURE:
            bindings = _extract(tree.car, bindings)
            tree = tree.cdr
            if tree is None:
                fail("$&parse", "null body in %closure")
            tree = _unwrap(tree)
    finally:
        _chain.pop()
    closure.tree = tree
    closure.binding = bindings
    return closure