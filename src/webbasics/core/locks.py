"""
=============================================================================
READER-WRITER LOCK
=============================================================================

A lock with two modes: SHARED (many readers at once) and EXCLUSIVE (one
writer, nobody else). Python's threading module only ships mutual
exclusion (Lock, RLock), so we build the shared mode on a Condition.

=============================================================================
WHY NOT A PLAIN LOCK?
=============================================================================

The router's route list is read on EVERY request and written only a
handful of times at start-up:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  ACCESS PATTERN OF THE ROUTE LIST                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Worker-0   ──R──R────R──R──R──────R──R──                           │
    │   Worker-1   ───R──R──R────R───R──R────R─                            │
    │   Worker-2   ─R────R───R──R───R──R──R────                            │
    │   main       W─W─W───────────────────────────  (registration)        │
    │                                                                      │
    │   R = dispatch (scan the list)   W = register (append)               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

With a plain Lock, readers would queue up behind each other even though
reading never conflicts with reading. A reader-writer lock lets all the
R's overlap and only serializes around the W's.

=============================================================================
STATE
=============================================================================

    _readers          number of threads currently holding SHARED mode
    _writer           True while one thread holds EXCLUSIVE mode
    _waiting_writers  writers blocked in acquire_write()

    acquire_read():   wait while _writer or _waiting_writers
    acquire_write():  wait while _writer or _readers

Readers also wait while a writer is WAITING (not just active). This is
"writer preference": without it, a steady stream of overlapping readers
could keep _readers above zero forever and the writer would starve.

=============================================================================
INTERVIEW QUESTIONS ABOUT READER-WRITER LOCKS
=============================================================================

Q: "When is a reader-writer lock slower than a mutex?"
A: "When critical sections are tiny or writes are frequent. The RW lock
   does more bookkeeping per acquire, so it only pays off when reads
   dominate and readers actually overlap."

Q: "Reader preference vs writer preference?"
A: "Reader preference maximizes throughput but can starve writers.
   Writer preference bounds writer latency at the cost of making new
   readers wait behind a queued writer."

Q: "Is this lock reentrant?"
A: "No. A thread holding the read lock that asks for the write lock
   deadlocks, because it waits for _readers to reach zero, including
   itself."

=============================================================================
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """
    Shared/exclusive lock with writer preference.

    Usage:
        lock = ReadWriteLock()

        with lock.read_locked():
            ...  # many threads may be here at once

        with lock.write_locked():
            ...  # exactly one thread, no readers

    Not reentrant in either mode.
    """

    def __init__(self):
        # One condition guards all three counters below
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    # =========================================================================
    # SHARED MODE
    # =========================================================================

    def acquire_read(self) -> None:
        """Block until no writer holds or is waiting for the lock."""
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        """Release one shared hold; wakes writers when the last reader leaves."""
        with self._cond:
            if self._readers == 0:
                raise RuntimeError("release_read() called without a read lock held")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    # =========================================================================
    # EXCLUSIVE MODE
    # =========================================================================

    def acquire_write(self) -> None:
        """Block until no reader or writer holds the lock."""
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        """Release exclusive mode and wake everyone waiting."""
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without the write lock held")
            self._writer = False
            self._cond.notify_all()

    # =========================================================================
    # CONTEXT MANAGERS
    # =========================================================================

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        """Hold the lock in shared mode for the duration of a with-block."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        """Hold the lock in exclusive mode for the duration of a with-block."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    # =========================================================================
    # INTROSPECTION (tests and debugging)
    # =========================================================================

    @property
    def readers(self) -> int:
        """Number of threads currently holding the lock in shared mode."""
        with self._cond:
            return self._readers

    @property
    def is_write_locked(self) -> bool:
        """True while a writer holds the lock."""
        with self._cond:
            return self._writer

    def __repr__(self) -> str:
        return (
            f"<ReadWriteLock readers={self._readers} writer={self._writer} "
            f"waiting_writers={self._waiting_writers}>"
        )
