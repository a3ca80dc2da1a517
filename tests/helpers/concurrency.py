"""Concurrency test utilities for multi-threaded integration tests.

Runs callables in separate threads, each with its own SQLAlchemy session
and its own event loop, so the only shared state is the database.
"""

import asyncio
from threading import Barrier, Thread
from typing import Any, Callable, List, Optional


def run_in_threads(
    targets: List[Callable[[], Any]], join_timeout: float = 10.0
) -> List[Any]:
    """Execute multiple functions concurrently in separate threads.

    Args:
        targets: List of functions to execute concurrently
        join_timeout: Maximum time to wait for threads to complete

    Returns:
        List aligned with targets holding each return value, or the
        exception the target raised
    """
    threads: List[Thread] = []
    outcomes: List[Any] = [None] * len(targets)

    def wrap(i: int, fn: Callable[[], Any]) -> None:
        try:
            outcomes[i] = fn()
        except BaseException as e:
            outcomes[i] = e

    for i, target in enumerate(targets):
        t = Thread(target=wrap, args=(i, target), daemon=True)
        threads.append(t)
        t.start()

    for t in threads:
        t.join(timeout=join_timeout)

    return outcomes


def session_worker(
    session_factory: Callable, fn: Callable, barrier: Optional[Barrier] = None
) -> Callable[[], Any]:
    """Wrap an async function to run with its own session and event loop.

    Args:
        session_factory: Function that creates new Session instances
        fn: Coroutine function, will receive Session as first argument
        barrier: Optional barrier all workers wait on before starting

    Returns:
        Wrapped function that manages session lifecycle
    """
    def _inner():
        sess = session_factory()
        try:
            if barrier is not None:
                barrier.wait()
            return asyncio.run(fn(sess))
        finally:
            sess.close()
    return _inner


def barrier_sync(n: int) -> Barrier:
    """Create a threading barrier for synchronizing n threads."""
    return Barrier(n)
