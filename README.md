# esshell

Building blocks of an extensible command shell whose commands are lists of
words and whose functions are closures with lexical bindings.

The package is a library: you import the pieces you need. It has no
command-line program of its own.

## Modules

- `esshell.errors`: `EsException` carries the list of terms that was thrown;
  its `name` is the first term and `rest` the others. `EsError` is the
  `error` exception, with `source` and `message`. `fail(source, message)`
  raises an `EsError`.
- `esshell.terms`: parse tree nodes (`Tree` with `kind`, `car` and `cdr`,
  and the `NodeKind` enum), `Term` (a string or a `Closure`), `Closure`
  (a tree with its bindings) and `Binding`, a chain of name-to-list links
  that can be iterated as `(name, defn)` pairs and searched with `lookup`.
  Helpers: `nth` (1-based), `sortlist`, `reverse_bindings`, and
  `extract_bindings`, which turns a parsed `%closure(...)` form into a
  `Closure`, supporting `$&nestedbinding` references.
- `esshell.dictionary`: `Dict`, an open-addressing hash table keyed by
  strings, using the shell's string hash `strhash`. Storing `None` under a
  name removes it; `get2(name1, name2)` looks up the catenation of two names
  without building it first; `items()` yields pairs in table order.
- `esshell.conv`: printing in shell syntax. `format_list`, `format_tree`,
  `format_closure` and `format_term` render lists, trees, closures and
  terms; `quote_string` quotes a word conservatively, writing unprintable
  characters as escapes; `protect_name` and `unprotect_name` encode names
  for the environment; `export_list` merges a list into one environment
  string with separator and escape characters.
- `esshell.glom`: `concat` and `qconcat` (cross-product concatenation, the
  latter also producing quote flags, returned as a `(terms, quotes)` pair),
  `qcat` for joining quote flags, `subscript` for `lo ... hi` selection of
  list elements, and `bindargs` for binding a lambda's arguments to its
  parameters.
- `esshell.access`: the `access` builtin (`-n name`, `-1`, `-e`, `-r`, `-w`,
  `-x`, and the file-type options `-f -d -c -b -l -s -p`), plus
  `check_file`, `path_cat` and `check_executable`.
- `esshell.fds`: `mvfd`, and `FdManager`, which records descriptor moves and
  closes in the parent shell (`defer_mvfd`, `defer_close`, `undefer`,
  `fdmap`), carries them out with `closefds`, keeps reservations of the
  shell's own descriptors held in `FdRef` objects (`register`,
  `unregister`, `releasefd`) and finds free descriptors with `newfd`.
- `esshell.input`: input sources. `Input.get` returns byte values or `EOF`,
  dropping null characters with a warning; `unget` pushes back up to two
  characters. `FdInput` reads from a descriptor and, when interactive, logs
  what it reads to a `History`; `StringInput` reads from a string. Inputs
  are context managers. `History.log` appends command lines to a file,
  skipping blank lines and comments; `History.set_file` switches files.

## What is not included

There is no parser, no evaluator, no filesystem wildcard matching and no
running of external commands, and so no interactive shell or script
runner. The modules above supply the data structures and services such a
shell would be built on.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from esshell.errors import EsError, fail
from esshell.conv import quote_string, protect_name, unprotect_name

print(quote_string("hello world"))   # 'hello world'
name = protect_name("fn-%foo")       # fn__2d__25foo
assert unprotect_name(name) == "fn-%foo"

try:
    fail("$&access", "no such file")
except EsError as exc:
    print(exc)                        # error $&access no such file
```