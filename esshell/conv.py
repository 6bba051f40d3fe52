"""Conversion of terms, lists, trees and closures to their printed forms."""

from __future__ import annotations

from typing import Iterable, Optional

from esshell.terms import Binding, Closure, NodeKind, Term, Tree

ENV_SEPARATOR = "\x01"
ENV_ESCAPE = "\x02"

# characters that end a word or mean something to the parser or the globber
_NON_WORD = frozenset(" \t\n#$&'()*;<=>?[\\]^`{|}~")

_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\x1b": "\\e",
}

_BINDING_KEYWORDS = {
    NodeKind.LOCAL: "local",
    NodeKind.LET: "let",
    NodeKind.FOR: "for",
    NodeKind.CLOSURE: "%closure",
}

_HEX = "0123456789abcdef"


def _needs_quoting(text: str) -> bool:
    return any(
        ch in _NON_WORD or ch == "@" or (ord(ch) < 128 and not ch.isprintable())
        for ch in text
    )


def quote_string(text: str, force: bool = False) -> str:
    """Quote a string so that the parser reads it back as one word.

    A string that needs no quoting is returned as it is unless ``force``.
    Unprintable characters are written as escapes joined to quoted runs
    with ``^``.
    """
    if not force and text and not _needs_quoting(text):
        return text

    out: list = []
    state = "begin"
    for ch in text:
        if not ch.isprintable():
            if state == "quoted":
                out.append("'")
            if state != "begin":
                out.append("^")
            out.append(_ESCAPES.get(ch, f"\\{ord(ch):o}"))
            state = "unquoted"
        else:
            if state == "unquoted":
                out.append("^")
            if state != "quoted":
                out.append("'")
            if ch == "'":
                out.append("'")
            out.append(ch)
            state = "quoted"

    if state == "begin":
        out.append("''")
    elif state == "quoted":
        out.append("'")
    return "".join(out)


def format_list(terms: Iterable[Term], sep: str = " ", alt: bool = False) -> str:
    """Join the string values of terms with ``sep``, quoting them if ``alt``."""
    if alt:
        return sep.join(quote_string(str(term)) for term in terms)
    return sep.join(str(term) for term in terms)


def _treecount(tree: Optional[Tree]) -> int:
    if tree is None:
        return 0
    if tree.kind is NodeKind.LIST:
        return _treecount(tree.car) + _treecount(tree.cdr)
    return 1


def _binding(out: list, keyword: str, tree: Tree) -> None:
    out.append(keyword + "(")
    sep = ""
    node = tree.car
    while node is not None:
        assign = node.car
        if assign is None or assign.kind is not NodeKind.ASSIGN:
            raise ValueError("binding list holds a node that is not an assignment")
        out.append(sep)
        _tree(out, assign.car, True)
        out.append("=")
        _tree(out, assign.cdr, False)
        sep = ";"
        node = node.cdr
    out.append(")")


def _tree(out: list, n: Optional[Tree], group: bool) -> None:
    while True:
        if n is None:
            if group:
                out.append("()")
            return
        kind = n.kind

        if kind is NodeKind.WORD:
            out.append(n.car)
            return
        if kind is NodeKind.QWORD:
            out.append(quote_string(n.car, True))
            return
        if kind is NodeKind.PRIM:
            out.append("$&" + n.car)
            return
        if kind is NodeKind.ASSIGN:
            _tree(out, n.car, True)
            out.append("=")
            n, group = n.cdr, False
            continue
        if kind is NodeKind.CONCAT:
            _tree(out, n.car, True)
            out.append("^")
            n, group = n.cdr, True
            continue
        if kind is NodeKind.MATCH or kind is NodeKind.EXTRACT:
            out.append("~ " if kind is NodeKind.MATCH else "~~ ")
            _tree(out, n.car, True)
            out.append(" ")
            n, group = n.cdr, False
            continue
        if kind is NodeKind.THUNK:
            out.append("{")
            _tree(out, n.car, False)
            out.append("}")
            return
        if kind is NodeKind.VARSUB:
            out.append("$")
            _tree(out, n.car, True)
            out.append("(")
            _tree(out, n.cdr, False)
            out.append(")")
            return
        if kind in _BINDING_KEYWORDS:
            _binding(out, _BINDING_KEYWORDS[kind], n)
            n, group = n.cdr, False
            continue
        if kind is NodeKind.CALL:
            target = n.car
            out.append("<=")
            if target is not None and target.kind in (NodeKind.THUNK, NodeKind.PRIM):
                n, group = target, False
                continue
            out.append("{")
            _tree(out, target, False)
            out.append("}")
            return
        if kind is NodeKind.VAR:
            out.append("$")
            n = n.car
            if n is None or n.kind in (NodeKind.WORD, NodeKind.QWORD):
                continue
            out.append("(")
            _tree(out, n, True)
            out.append(")")
            return
        if kind is NodeKind.LAMBDA:
            out.append("@ ")
            if n.car is None:
                out.append("* ")
            else:
                _tree(out, n.car, False)
            out.append("{")
            _tree(out, n.cdr, False)
            out.append("}")
            return
        if kind is NodeKind.LIST:
            if not group:
                while n.cdr is not None:
                    _tree(out, n.car, False)
                    out.append(" ")
                    n = n.cdr
                n = n.car
                continue
            count = _treecount(n)
            if count == 0:
                out.append("()")
            elif count == 1:
                _tree(out, n.car, False)
                _tree(out, n.cdr, False)
            else:
                out.append("(")
                _tree(out, n.car, False)
                rest = n.cdr
                while rest is not None:
                    out.append(" ")
                    _tree(out, rest.car, False)
                    rest = rest.cdr
                out.append(")")
            return
        raise ValueError(f"bad node kind: {kind.name}")


def format_tree(tree: Optional[Tree], group: bool = False) -> str:
    """Print a parse tree in a form the parser reads back.

    With ``group`` a list is wrapped in parentheses and an empty tree
    prints as ``()``.
    """
    out: list = []
    _tree(out, tree, group)
    return "".join(out)


def _enclose(binding: Binding) -> str:
    pairs = list(binding)
    pairs.reverse()
    return ";".join(
        f"{quote_string(name)}={format_list(defn, ' ', alt=True)}" for name, defn in pairs
    )


def format_closure(closure: Closure, alt: bool = False) -> str:
    """Print a closure, with its bindings as a ``%closure(...)`` prefix.

    With ``alt`` the whole printed form is quoted as one word.
    """
    if alt:
        return quote_string(format_closure(closure, False))
    prefix = ""
    if closure.binding is not None:
        prefix = "%closure(" + _enclose(closure.binding) + ")"
    return prefix + format_tree(closure.tree, False)


def format_term(term: Term, alt: bool = False) -> str:
    """Print a term: a closure as a closure, a string as it is or quoted."""
    if term.closure is not None:
        return format_closure(term.closure, alt)
    text = str(term)
    return quote_string(text) if alt else text


def protect_name(name: str) -> str:
    """Encode a name so that it holds only letters, digits and single ``_``."""
    data = name.encode("utf-8", errors="surrogateescape")
    out: list = []
    for i, c in enumerate(data):
        ch = chr(c)
        following = data[i + 1] if i + 1 < len(data) else 0
        plain = ch.isascii() and (ch.isalpha() if i == 0 else ch.isalnum())
        if plain or (ch == "_" and following != ord("_")):
            out.append(ch)
        else:
            out.append(f"__{c:02x}")
    return "".join(out)


def unprotect_name(name: str) -> str:
    """Undo :func:`protect_name`."""
    data = name.encode("utf-8", errors="surrogateescape")
    out = bytearray()
    i = 0
    while i < len(data):
        c = data[i]
        i += 1
        if c == ord("_") and i < len(data) and data[i] == ord("_"):
            hi = chr(data[i + 1]) if i + 1 < len(data) else ""
            lo = chr(data[i + 2]) if i + 2 < len(data) else ""
            if hi and lo and hi in _HEX and lo in _HEX:
                c = (_HEX.index(hi) << 4) | _HEX.index(lo)
                i += 3
        out.append(c)
    return out.decode("utf-8", errors="surrogateescape")


def export_list(
    terms: Iterable[Term], separator: str = ENV_SEPARATOR, escape: str = ENV_ESCAPE
) -> str:
    """Merge a list into one environment string, escaping special characters."""
    pieces = []
    for term in terms:
        text = str(term)
        pieces.append(
            "".join(escape + ch if ch in (escape, separator) else ch for ch in text)
        )
    return separator.join(pieces)