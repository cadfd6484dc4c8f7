"""
Concurrency throttle for the worker pool.

Responsibility:
    Bound the number of workers that simultaneously hold a detector
    instance and a decoded image. A PermitPool is a counting resource;
    a ScopedPermit takes one slot on entry and gives it back on every
    exit path, including exceptions.

Usage:
    pool = PermitPool(os.cpu_count())
    with pool.permit():
        ...  # at most pool.size threads are in here at once
"""

import threading


class PermitPool:
    """A fixed number of permits shared by all workers of a batch."""

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError(f"PermitPool size must be at least 1, got {size}.")

        self._size = size
        self._semaphore = threading.BoundedSemaphore(size)
        self._lock = threading.Lock()
        self._in_use = 0

    @property
    def size(self) -> int:
        return self._size

    @property
    def in_use(self) -> int:
        """Number of permits currently held."""
        with self._lock:
            return self._in_use

    def permit(self) -> "ScopedPermit":
        """Return a new, not yet acquired, scoped permit."""
        return ScopedPermit(self)

    def _acquire(self) -> None:
        self._semaphore.acquire()
        with self._lock:
            self._in_use += 1

    def _release(self) -> None:
        with self._lock:
            self._in_use -= 1
        self._semaphore.release()


class ScopedPermit:
    """Holds one permit of a PermitPool for the duration of a `with` block.

    Acquisition blocks until a permit is free. A ScopedPermit is
    single-use and cannot be copied.
    """

    def __init__(self, pool: PermitPool) -> None:
        self._pool = pool
        self._state = "new"

    def __enter__(self) -> "ScopedPermit":
        if self._state != "new":
            raise RuntimeError(f"ScopedPermit cannot be re-entered (state={self._state}).")
        self._pool._acquire()
        self._state = "held"
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._state = "released"
        self._pool._release()

    @property
    def held(self) -> bool:
        return self._state == "held"

    def __copy__(self):
        raise TypeError("ScopedPermit cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("ScopedPermit cannot be copied")

    def __reduce__(self):
        raise TypeError("ScopedPermit cannot be copied")
