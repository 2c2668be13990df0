from __future__ import annotations

from concurrent.futures import FIRST_EXCEPTION, Executor, Future, wait
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def map_until_error(
    pool: Optional[Executor], fn: Callable[[T], R], items: Iterable[T]
) -> List[R]:
    """Run ``fn`` over ``items`` and re-raise the first failure.

    Work that has not started yet is cancelled once a failure is seen.
    Without a pool the items are processed inline.
    """
    if pool is None:
        return [fn(item) for item in items]
    futures = [pool.submit(fn, item) for item in items]
    done, pending = wait(futures, return_when=FIRST_EXCEPTION)
    for future in futures:
        if future in done and future.exception() is not None:
            for other in pending:
                other.cancel()
            raise future.exception()  # type: ignore[misc]
    return [future.result() for future in futures]


def map_all(pool: Optional[Executor], fn: Callable[[T], R], items: Iterable[T]) -> List[R]:
    """Run ``fn`` over ``items`` and block until every call has finished."""
    if pool is None:
        return [fn(item) for item in items]
    futures = [pool.submit(fn, item) for item in items]
    return wait_all(futures)


def wait_all(futures: Sequence[Future]) -> List:
    wait(futures)
    return [future.result() for future in futures]
