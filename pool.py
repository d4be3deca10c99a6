"""Bounded pool of ready-to-use pipeline instances."""

import logging
import os
import queue
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from .errors import PoolExhausted
from .pipeline import Pipeline, PipelineStages

logger = logging.getLogger(__name__)


class PipelinePool:
    """A fixed set of Pipeline instances handed out one at a time.

    Callers that cannot get an instance wait in FIFO order. The pool never
    grows or shrinks, so under overload requests queue here instead of
    allocating more analysis resources.
    """

    def __init__(
        self,
        stages: PipelineStages,
        size: Optional[int] = None,
        factory: Callable[[PipelineStages], Pipeline] = Pipeline,
    ):
        self.size = size if size is not None else (os.cpu_count() or 1)
        if self.size < 1:
            raise ValueError(f"Pool size must be at least 1, got {self.size}")

        self._instances: List[Pipeline] = [factory(stages) for _ in range(self.size)]
        self._free: "queue.Queue[Pipeline]" = queue.Queue(maxsize=self.size)
        for instance in self._instances:
            self._free.put_nowait(instance)
        self._leased = set()
        self._lock = threading.Lock()
        logger.info(f"Pipeline pool initialized with {self.size} instances")

    @property
    def available(self) -> int:
        return self._free.qsize()

    def acquire(self, timeout: Optional[float] = None) -> Pipeline:
        """Take an instance, waiting up to ``timeout`` seconds.

        Raises:
            PoolExhausted: if no instance became free in time
        """
        try:
            pipeline = self._free.get(timeout=timeout)
        except queue.Empty:
            logger.warning(f"No pipeline free after {timeout}s ({self.size} in use)")
            raise PoolExhausted(timeout) from None
        with self._lock:
            self._leased.add(id(pipeline))
        return pipeline

    def release(self, pipeline: Pipeline) -> None:
        """Return an instance taken with ``acquire``."""
        with self._lock:
            if id(pipeline) not in self._leased:
                raise ValueError("Released a pipeline that is not leased from this pool")
            self._leased.discard(id(pipeline))
        self._free.put_nowait(pipeline)

    @contextmanager
    def lease(self, timeout: Optional[float] = None) -> Iterator[Pipeline]:
        """Acquire an instance for the duration of a ``with`` block."""
        pipeline = self.acquire(timeout)
        try:
            yield pipeline
        finally:
            self.release(pipeline)

    def close(self):
        for instance in self._instances:
            instance.close()
