import contextlib
import os

import pytest

from esshell.errors import EsError
from esshell.fds import FdManager, FdRef, mvfd


def _is_open(fd):
    try:
        os.fstat(fd)
    except OSError:
        return False
    return True


def _close(*fds):
    for fd in fds:
        if fd is not None:
            with contextlib.suppress(OSError):
                os.close(fd)


@pytest.fixture
def pipe():
    r, w = os.pipe()
    yield r, w
    _close(r, w)


def test_mvfd_moves_descriptor(pipe):
    r, w = pipe
    target = FdManager().newfd()
    try:
        mvfd(w, target)
        assert not _is_open(w)
        os.write(target, b"hi")
        assert os.read(r, 2) == b"hi"
    finally:
        _close(target)


def test_mvfd_same_descriptor_is_noop(pipe):
    r, w = pipe
    result = mvfd(w, w)
    assert result is None
    assert _is_open(w)
    os.write(w, b"z")
    assert os.read(r, 1) == b"z"


def test_mvfd_bad_descriptor():
    free = FdManager().newfd()
    with pytest.raises(EsError) as info:
        mvfd(free, free + 1)
    assert info.value.source == "es:mvfd"


def test_newfd_is_free_and_above_stdio():
    fd = FdManager().newfd()
    assert fd >= 3
    assert not _is_open(fd)


def test_newfd_skips_deferred():
    manager = FdManager()
    first = manager.newfd()
    ticket = manager.defer_close(True, first)
    second = manager.newfd()
    assert ticket == 0
    assert second > first
    assert not _is_open(second)


def test_defer_in_child_happens_now(pipe):
    r, w = pipe
    manager = FdManager()
    target = manager.newfd()
    try:
        assert manager.defer_mvfd(False, w, target) is None
        assert not _is_open(w)
        assert _is_open(target)
    finally:
        _close(target)


def test_defer_in_parent_is_recorded(pipe):
    r, w = pipe
    manager = FdManager()
    target = manager.newfd()
    ticket = manager.defer_mvfd(True, w, target)
    assert ticket == 0
    assert manager.fdmap(target) == w
    assert not _is_open(target)
    manager.undefer(ticket)
    assert manager.fdmap(target) == target
    assert not _is_open(w)


def test_defer_close_maps_to_none():
    manager = FdManager()
    manager.defer_close(True, 1)
    assert manager.fdmap(1) is None
    assert manager.fdmap(2) == 2


def test_undefer_none_ticket_does_nothing():
    manager = FdManager()
    manager.defer_close(True, 1)
    manager.undefer(None)
    assert manager.fdmap(1) is None


def test_undefer_out_of_order():
    manager = FdManager()
    manager.defer_close(True, 1)
    manager.defer_close(True, 2)
    with pytest.raises(ValueError):
        manager.undefer(0)


def test_closefds_carries_out_deferrals(pipe):
    r, w = pipe
    manager = FdManager()
    target = manager.newfd()
    try:
        manager.defer_mvfd(True, w, target)
        manager.closefds()
        assert manager.fdmap(target) == target
        os.write(target, b"ok")
        assert os.read(r, 2) == b"ok"
    finally:
        _close(target)


def test_closefds_closes_reserved(pipe):
    r, w = pipe
    manager = FdManager()
    closing = FdRef(w)
    keeping = FdRef(r)
    manager.register(closing, True)
    manager.register(keeping, False)
    manager.closefds()
    assert closing.fd is None
    assert not _is_open(w)
    assert keeping.fd == r
    assert _is_open(r)


def test_register_twice_rejected():
    manager = FdManager()
    ref = FdRef(5)
    manager.register(ref, True)
    with pytest.raises(ValueError):
        manager.register(ref, False)


def test_unregister_unknown_rejected():
    with pytest.raises(ValueError):
        FdManager().unregister(FdRef(5))


def test_unregister_then_register_again():
    manager = FdManager()
    ref = FdRef(5)
    manager.register(ref, True)
    manager.unregister(ref)
    manager.register(ref, True)
    with pytest.raises(ValueError):
        manager.register(ref, True)


def test_releasefd_moves_reserved(pipe):
    r, w = pipe
    manager = FdManager()
    ref = FdRef(w)
    manager.register(ref, True)
    manager.releasefd(w)
    try:
        assert ref.fd not in (None, w)
        assert not _is_open(w)
        os.write(ref.fd, b"x")
        assert os.read(r, 1) == b"x"
    finally:
        _close(ref.fd)


def test_releasefd_leaves_others(pipe):
    r, w = pipe
    manager = FdManager()
    ref = FdRef(w)
    manager.register(ref, True)
    manager.releasefd(r)
    assert ref.fd == w
    assert _is_open(w)


def test_defer_rejects_negative():
    with pytest.raises(ValueError):
        FdManager().defer_mvfd(True, -1, 3)