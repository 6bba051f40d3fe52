"""File descriptor moves, deferred descriptor operations and reservations."""

from __future__ import annotations

import contextlib
import errno
import os
from dataclasses import dataclass
from typing import List, Optional

from esshell.errors import fail


def mvfd(old: int, new: int) -> None:
    """Duplicate ``old`` onto ``new`` and close ``old``."""
    if old == new:
        return
    try:
        os.dup2(old, new)
    except OSError as exc:
        fail("es:mvfd", f"dup2: {os.strerror(exc.errno or errno.EBADF)}")
    with contextlib.suppress(OSError):
        os.close(old)


@dataclass(eq=False)
class FdRef:
    """A mutable holder for a descriptor the shell keeps; None when closed."""

    fd: Optional[int] = None


@dataclass(eq=False)
class _Defer:
    real: FdRef
    userfd: int


@dataclass(eq=False)
class _Reserve:
    ref: FdRef
    close_on_fork: bool


class FdManager:
    """Tracks deferred descriptor operations and the shell's own descriptors.

    In the parent shell, moves and closes are recorded rather than done and
    are carried out by :meth:`closefds` after a fork.  Reserved descriptors
    are moved out of the way when a user descriptor needs their number.
    """

    def __init__(self) -> None:
        self._deferred: List[_Defer] = []
        self._reserved: List[_Reserve] = []

    def _do_deferred(self, realfd: Optional[int], userfd: int) -> None:
        self.releasefd(userfd)
        if realfd is None:
            with contextlib.suppress(OSError):
                os.close(userfd)
        else:
            mvfd(realfd, userfd)

    def _push(self, parent: bool, realfd: Optional[int], userfd: int) -> Optional[int]:
        if not parent:
            self._do_deferred(realfd, userfd)
            return None
        ref = FdRef(realfd)
        self._deferred.append(_Defer(ref, userfd))
        self.register(ref, True)
        return len(self._deferred) - 1

    def defer_mvfd(self, parent: bool, old: int, new: int) -> Optional[int]:
        """Move ``old`` onto ``new`` now, or record it if in the parent shell.

        Returns a ticket for :meth:`undefer`, or None if done at once.
        """
        if old < 0 or new < 0:
            raise ValueError("file descriptors must not be negative")
        return self._push(parent, old, new)

    def defer_close(self, parent: bool, fd: int) -> Optional[int]:
        """Close ``fd`` now, or record the close if in the parent shell."""
        if fd < 0:
            raise ValueError("file descriptors must not be negative")
        return self._push(parent, None, fd)

    def undefer(self, ticket: Optional[int]) -> None:
        """Drop the most recent deferred operation, closing its real descriptor."""
        if ticket is None:
            return
        if not self._deferred or ticket != len(self._deferred) - 1:
            raise ValueError(f"ticket {ticket} is not the latest deferral")
        defer = self._deferred.pop()
        self.unregister(defer.real)
        if defer.real.fd is not None:
            with contextlib.suppress(OSError):
                os.close(defer.real.fd)

    def fdmap(self, fd: int) -> Optional[int]:
        """Map a user descriptor to the real one; None if it is to be closed."""
        for defer in reversed(self._deferred):
            if fd == defer.userfd:
                if defer.real.fd is None:
                    return None
                fd = defer.real.fd
        return fd

    def _remap(self) -> None:
        deferred, self._deferred = self._deferred, []
        for defer in deferred:
            self.unregister(defer.real)
            self._do_deferred(defer.real.fd, defer.userfd)

    def register(self, ref: FdRef, close_on_fork: bool) -> None:
        """Reserve the descriptor held by ``ref`` for the shell's own use."""
        if any(entry.ref is ref for entry in self._reserved):
            raise ValueError("descriptor reference is already registered")
        self._reserved.append(_Reserve(ref, close_on_fork))

    def unregister(self, ref: FdRef) -> None:
        """Give up the reservation of ``ref``."""
        for index, entry in enumerate(self._reserved):
            if entry.ref is ref:
                del self._reserved[index]
                return
        raise ValueError(f"{ref!r} is not on the reserved descriptor list")

    def closefds(self) -> None:
        """Carry out deferred operations and close reserved descriptors (after a fork)."""
        self._remap()
        for entry in self._reserved:
            if entry.close_on_fork:
                fd = entry.ref.fd
                if fd is not None and fd >= 3:
                    with contextlib.suppress(OSError):
                        os.close(fd)
                entry.ref.fd = None

    def releasefd(self, n: int) -> None:
        """Move any reserved descriptor numbered ``n`` to another number."""
        if n < 0:
            raise ValueError("file descriptors must not be negative")
        for entry in self._reserved:
            fd = entry.ref.fd
            if fd == n:
                try:
                    entry.ref.fd = os.dup(fd)
                except OSError as exc:
                    fail("es:releasefd", os.strerror(exc.errno or errno.EBADF))
                with contextlib.suppress(OSError):
                    os.close(fd)

    def _is_deferred(self, fd: int) -> bool:
        return any(defer.userfd == fd for defer in self._deferred)

    def newfd(self) -> int:
        """Return a free descriptor number, at least 3, not named by a deferral."""
        i = 3
        while True:
            if not self._is_deferred(i):
                try:
                    fd = os.dup(i)
                except OSError as exc:
                    if exc.errno != errno.EBADF:
                        fail("$&newfd", f"newfd: {os.strerror(exc.errno or 0)}")
                    return i
                if self._is_deferred(fd):
                    try:
                        return self.newfd()
                    finally:
                        os.close(fd)
                os.close(fd)
                return fd
            i += 1