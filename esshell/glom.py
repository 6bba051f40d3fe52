"""Building word lists from parse trees: concatenation, quoting flags,
subscripts and binding of arguments to parameters."""

from __future__ import annotations

import enum
import re
from typing import Optional, Sequence, Union

from esshell.errors import fail
from esshell.terms import Binding, NodeKind, Term, Tree


class _Quote(enum.Enum):
    QUOTED = "QUOTED"
    UNQUOTED = "RAW"


QUOTED = _Quote.QUOTED
"""Quote flag for a word whose characters are all quoted."""

UNQUOTED = _Quote.UNQUOTED
"""Quote flag for a word whose characters are all raw."""

QuoteFlag = Union[_Quote, str]

_ATOI = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _ATOI.match(text)
    return int(match.group(1)) if match else 0


def concat(left: Sequence[Term], right: Sequence[Term]) -> list:
    """Return the cross product of two lists, each pair joined into one term."""
    return [Term(str(a) + str(b)) for a in left for b in right]


def _expand(flag: QuoteFlag, term: Term) -> str:
    if flag is QUOTED:
        return "q" * len(str(term))
    if flag is UNQUOTED:
        return "r" * len(str(term))
    return flag


def qcat(q1: QuoteFlag, q2: QuoteFlag, t1: Term, t2: Term) -> QuoteFlag:
    """Join the quote flags of two terms being concatenated.

    Two wholly quoted or two wholly raw words keep their flag; otherwise the
    result spells out each character as ``q`` (quoted) or ``r`` (raw).
    """
    if q1 is QUOTED and q2 is QUOTED:
        return QUOTED
    if q1 is UNQUOTED and q2 is UNQUOTED:
        return UNQUOTED
    return _expand(q1, t1) + _expand(q2, t2)


def qconcat(
    left: Sequence[Term],
    right: Sequence[Term],
    lquotes: Sequence[QuoteFlag],
    rquotes: Sequence[QuoteFlag],
) -> tuple:
    """Cross-product concatenation that also produces the quote flags.

    Returns a pair: the list of joined terms and the list of their flags.
    """
    if len(left) != len(lquotes) or len(right) != len(rquotes):
        raise ValueError("each term needs exactly one quote flag")
    terms: list = []
    quotes: list = []
    for t1, q1 in zip(left, lquotes):
        for t2, q2 in zip(right, rquotes):
            terms.append(Term(str(t1) + str(t2)))
            quotes.append(qcat(q1, q2, t1, t2))
    return terms, quotes


def _bad_subscript(text: str) -> None:
    fail("es:subscript", f"bad subscript: {text}")


def subscript(terms: Sequence[Term], subs: Sequence[Term]) -> list:
    """Select elements of a list by 1-based subscripts and ``lo ... hi`` ranges.

    A range with no upper end runs to the end of the list; a leading
    ``...`` starts at 1.  Subscripts beyond the list select nothing.
    """
    words = [str(sub) for sub in subs]
    length = len(terms)
    result: list = []
    i = 0
    while i < len(words):
        if i == 0 and words[0] == "...":
            lo = 1
            is_range = True
        else:
            lo = _atoi(words[i])
            if lo < 1:
                _bad_subscript(words[i])
            i += 1
            is_range = i < len(words) and words[i] == "..."
        if is_range:
            i += 1
            if i >= len(words):
                hi = length
            else:
                hi = _atoi(words[i])
                if hi < 1:
                    _bad_subscript(words[i])
                hi = min(hi, length)
                i += 1
        else:
            hi = lo
        if lo > length:
            continue
        result.extend(terms[lo - 1:hi])
    return result


def bindargs(
    params: Optional[Tree], args: Sequence[Term], binding: Optional[Binding]
) -> Binding:
    """Bind arguments to a lambda's parameter list.

    With no parameters every argument is bound to ``*``.  Each parameter
    takes one argument, the last one takes all that remain, and parameters
    left over are bound to the empty list.
    """
    if params is None:
        return Binding("*", list(args), binding)
    remaining = list(args)
    node: Optional[Tree] = params
    while node is not None:
        if node.kind is not NodeKind.LIST:
            raise ValueError("parameter list is not a list")
        param = node.car
        if param is None or param.kind not in (NodeKind.WORD, NodeKind.QWORD):
            raise ValueError("parameter is not a word")
        if not remaining:
            value: list = []
        elif node.cdr is None or len(remaining) == 1:
            value, remaining = remaining, []
        else:
            value, remaining = [remaining[0]], remaining[1:]
        binding = Binding(param.car, value, binding)
        node = node.cdr
    return binding