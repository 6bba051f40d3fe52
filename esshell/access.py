"""Access testing of files and searching for them along paths."""

from __future__ import annotations

import errno
import os
import stat
from typing import Iterable, List, Optional, Tuple

from esshell.errors import fail
from esshell.terms import Term

READ = 4
WRITE = 2
EXEC = 1

_USER_SHIFT = 6
_GROUP_SHIFT = 3
_OTHER_SHIFT = 0

_USAGE = "access [-n name] [-1e] [-rwx] [-fdcblsp] path ..."

_PERM_OPTIONS = {"r": READ, "w": WRITE, "x": EXEC}

_KIND_OPTIONS = {
    "f": stat.S_IFREG,
    "d": stat.S_IFDIR,
    "c": stat.S_IFCHR,
    "b": stat.S_IFBLK,
    "l": stat.S_IFLNK,
    "s": stat.S_IFSOCK,
    "p": stat.S_IFIFO,
}

_FLAG_OPTIONS = frozenset("1e")


def _denied(path: str) -> PermissionError:
    return PermissionError(errno.EACCES, os.strerror(errno.EACCES), path)


def _in_group_set(gid: int) -> bool:
    try:
        return gid in os.getgroups()
    except OSError:
        return False


def _test_perm(st: os.stat_result, perm: int, path: str) -> None:
    if perm == 0:
        return
    uid = os.geteuid()
    if uid == 0:
        mask = (perm << _USER_SHIFT) | (perm << _GROUP_SHIFT) | (perm << _OTHER_SHIFT)
    elif uid == st.st_uid:
        mask = perm << _USER_SHIFT
    elif os.getegid() == st.st_gid or _in_group_set(st.st_gid):
        mask = perm << _GROUP_SHIFT
    else:
        mask = perm << _OTHER_SHIFT
    if not st.st_mode & mask:
        raise _denied(path)


def check_file(path: str, perm: int = 0, kind: Optional[int] = None) -> None:
    """Check that ``path`` exists, has file type ``kind`` and allows ``perm``.

    ``perm`` is a combination of READ, WRITE and EXEC; ``kind`` is one of the
    ``stat.S_IF*`` file types, or None for any type.  A symbolic link kind
    examines the link itself.  Raises OSError when the check fails.
    """
    st = os.lstat(path) if kind == stat.S_IFLNK else os.stat(path)
    if kind and stat.S_IFMT(st.st_mode) != kind:
        raise _denied(path)
    _test_perm(st, perm, path)


def path_cat(prefix: str, suffix: str) -> str:
    """Join two path pieces with a single ``/``; an empty piece yields the other."""
    if not prefix:
        return suffix
    if not suffix:
        return prefix
    if prefix.endswith("/"):
        return prefix + suffix
    return prefix + "/" + suffix


def _usage_error(detail: str) -> None:
    fail("$&access", f"{detail} -- usage: {_USAGE}")


def _parse_options(words: List[str]) -> Tuple[list, List[str]]:
    options: list = []
    i = 0
    while i < len(words):
        word = words[i]
        if word == "--":
            i += 1
            break
        if len(word) < 2 or not word.startswith("-"):
            break
        i += 1
        j = 1
        while j < len(word):
            c = word[j]
            j += 1
            if c == "n":
                if j < len(word):
                    value = word[j:]
                    j = len(word)
                elif i < len(words):
                    value = words[i]
                    i += 1
                else:
                    _usage_error("option -n needs an argument")
                options.append((c, value))
            elif c in _PERM_OPTIONS or c in _KIND_OPTIONS or c in _FLAG_OPTIONS:
                options.append((c, None))
            else:
                _usage_error(f"illegal option: -{c}")
    return options, words[i:]


def _error_of(path: str, perm: int, kind: Optional[int]) -> int:
    try:
        check_file(path, perm, kind)
    except OSError as exc:
        return exc.errno or errno.EACCES
    return 0


def access(args: Iterable[object]) -> list:
    """The ``access`` primitive: test each path and report the outcome.

    Without ``-1`` the result holds, for each path, ``0`` or the text of the
    error.  With ``-1`` it holds the first path that passes, or nothing;
    adding ``-e`` turns finding nothing into an error.  ``-n name`` appends
    ``name`` to each path before testing it.
    """
    options, paths = _parse_options([str(arg) for arg in args])
    perm = 0
    kind: Optional[int] = None
    first = False
    exception = False
    suffix: Optional[str] = None
    for option, value in options:
        if option == "n":
            suffix = value
        elif option == "1":
            first = True
        elif option == "e":
            exception = True
        elif option in _PERM_OPTIONS:
            perm |= _PERM_OPTIONS[option]
        else:
            kind = _KIND_OPTIONS[option]

    estatus = errno.ENOENT
    results: list = []
    for path in paths:
        name = path_cat(path, suffix) if suffix is not None else path
        error = _error_of(name, perm, kind)
        if first:
            if error == 0:
                return [Term(name)]
            if error != errno.ENOENT:
                estatus = error
        else:
            results.append(Term("0" if error == 0 else os.strerror(error)))

    if first and exception:
        if suffix:
            fail("$&access", f"{suffix}: {os.strerror(estatus)}")
        fail("$&access", os.strerror(estatus))
    return results


def check_executable(path: str) -> Optional[str]:
    """Return None if ``path`` is an executable regular file, else the error text."""
    error = _error_of(path, EXEC, stat.S_IFREG)
    return None if error == 0 else os.strerror(error)