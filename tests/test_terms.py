import pytest

from esshell.errors import EsError
from esshell.terms import (
    Binding,
    Closure,
    NodeKind,
    Term,
    Tree,
    extract_bindings,
    nth,
    reverse_bindings,
    sortlist,
)


def word(text):
    return Tree(NodeKind.WORD, text)


def prim(text):
    return Tree(NodeKind.PRIM, text)


def tlist(*items):
    result = None
    for item in reversed(items):
        result = Tree(NodeKind.LIST, item, result)
    return result


def defn(name, *values):
    return Tree(NodeKind.ASSIGN, word(name), tlist(*values))


def closure_tree(defs, body):
    return Tree(NodeKind.CLOSURE, tlist(*defs), body)


def test_term_str_of_text():
    assert str(Term("hello")) == "hello"


def test_nth():
    terms = [Term("a"), Term("b"), Term("c")]
    assert nth(terms, 1) == Term("a")
    assert nth(terms, 3) == Term("c")
    assert nth(terms, 0) is None
    assert nth(terms, 4) is None


def test_sortlist_sorts_by_string():
    terms = [Term("pear"), Term("apple"), Term("fig")]
    assert sortlist(terms) == [Term("apple"), Term("fig"), Term("pear")]


def test_sortlist_short_lists_unchanged():
    single = [Term("x")]
    assert sortlist(single) is single
    assert sortlist([]) == []


def test_binding_lookup_finds_nearest():
    chain = Binding("x", [Term("inner")], Binding("x", [Term("outer")], Binding("y", [])))
    assert chain.lookup("x") == [Term("inner")]
    assert chain.lookup("y") == []
    assert chain.lookup("z") is None


def test_binding_iteration_order():
    chain = Binding("a", [Term("1")], Binding("b", [Term("2")]))
    assert [name for name, _ in chain] == ["a", "b"]


def test_reverse_bindings():
    chain = Binding("a", [Term("1")], Binding("b", [Term("2")], Binding("c", [])))
    reversed_chain = reverse_bindings(chain)
    assert [name for name, _ in reversed_chain] == ["c", "b", "a"]
    assert reverse_bindings(reversed_chain) == chain
    assert reverse_bindings(None) is None


def test_extract_bindings_simple():
    body = Tree(NodeKind.THUNK, word("echo"))
    tree = closure_tree([defn("a", word("1"), word("2")), defn("b", word("x"))], body)
    result = extract_bindings(tree)
    assert result.tree is body
    assert result.binding.lookup("a") == [Term("1"), Term("2")]
    assert result.binding.lookup("b") == [Term("x")]
    assert [name for name, _ in result.binding] == ["b", "a"]


def test_extract_bindings_unwraps_single_list():
    body = Tree(NodeKind.THUNK, word("x"))
    result = extract_bindings(tlist(closure_tree([defn("v", word("w"))], tlist(body))))
    assert result.tree is body
    assert result.binding.lookup("v") == [Term("w")]


def test_extract_bindings_without_closure():
    body = Tree(NodeKind.THUNK, word("x"))
    result = extract_bindings(body)
    assert result.tree is body
    assert result.binding is None


def test_nested_binding_refers_to_new_closure():
    body = Tree(NodeKind.LAMBDA, None, word("x"))
    tree = closure_tree([defn("f", word("0"), prim("nestedbinding"), word("tail"))], body)
    result = extract_bindings(tree)
    values = result.binding.lookup("f")
    assert len(values) == 2
    assert values[0].closure is result
    assert values[1] == Term("tail")
    assert isinstance(result, Closure)


def test_nested_binding_bad_count():
    tree = closure_tree([defn("f", word("1"), prim("nestedbinding"))], word("x"))
    with pytest.raises(EsError) as info:
        extract_bindings(tree)
    assert info.value.message == "bad count in $&nestedbinding: 1"


def test_nested_binding_improper_use():
    tree = closure_tree([defn("f", prim("nestedbinding"))], word("x"))
    with pytest.raises(EsError) as info:
        extract_bindings(tree)
    assert info.value.message == "improper use of $&nestedbinding"


def test_bad_primitive():
    tree = closure_tree([defn("f", prim("foo"))], word("x"))
    with pytest.raises(EsError) as info:
        extract_bindings(tree)
    assert info.value.message == "bad unquoted primitive in %closure: $&foo"
    assert info.value.source == "$&parse"


def test_null_body():
    tree = closure_tree([defn("f", word("1"))], None)
    with pytest.raises(EsError) as info:
        extract_bindings(tree)
    assert info.value.message == "null body in %closure"


def test_chain_restored_after_error():
    with pytest.raises(EsError):
        extract_bindings(closure_tree([defn("f", prim("foo"))], word("x")))
    bad = closure_tree([defn("f", word("1"), prim("nestedbinding"))], word("x"))
    with pytest.raises(EsError):
        extract_bindings(bad)
    good = closure_tree([defn("f", word("0"), prim("nestedbinding"))], word("x"))
    result = extract_bindings(good)
    assert result.binding.lookup("f")[0].closure is result