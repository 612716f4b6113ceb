"""
Concurrency helpers.

- DocumentLockRegistry: per-document-id locks so two transitions on the
  same document never interleave inside one process. The repository's
  conditional UPDATE covers the cross-process case.
- call_with_timeout: runs a blocking collaborator call on a worker
  thread and turns an elapsed deadline into CollaboratorTimeout.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from contextlib import contextmanager
from typing import Callable, TypeVar

from govdoc.core.errors import CollaboratorTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DocumentLockRegistry:
    """Reference-counted locks keyed by document id."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}   # id -> [lock, holders]

    @contextmanager
    def hold(self, document_id: str):
        with self._guard:
            slot = self._locks.setdefault(document_id, [threading.Lock(), 0])
            slot[1] += 1
        lock = slot[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._locks[document_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


def call_with_timeout(fn: Callable[..., T], *args, timeout: float | None, operation: str, **kwargs) -> T:
    """
    Call fn(*args, **kwargs) with a deadline.

    A timeout of None runs the call inline. On timeout the worker thread
    is abandoned (Python cannot kill it) and CollaboratorTimeout is raised.
    """
    if timeout is None:
        return fn(*args, **kwargs)

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"govdoc-{operation}")
    future = executor.submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        logger.warning(f"{operation} exceeded {timeout:.1f}s deadline")
        raise CollaboratorTimeout(operation, timeout)
    finally:
        executor.shutdown(wait=False)
