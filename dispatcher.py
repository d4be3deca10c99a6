"""Request front door: turns ``ask:<question>`` messages into pipeline runs."""

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Tuple

from .errors import MalformedRequest, PoolExhausted
from .pool import PipelinePool

logger = logging.getLogger(__name__)

Send = Callable[[str], None]

VERBS = ("ask",)
BUSY_RESPONSE = json.dumps({"error": "busy"})


def parse_message(message: str) -> Tuple[str, str]:
    """Split ``<verb>:<payload>`` on the first colon.

    Raises:
        MalformedRequest: for a missing separator or an unknown verb
    """
    verb, sep, payload = message.partition(":")
    verb = verb.strip().lower()
    if not sep or verb not in VERBS:
        raise MalformedRequest(message)
    return verb, payload


def failure_response(exc: BaseException) -> str:
    return json.dumps({"error": "failed", "message": str(exc)})


class Dispatcher:
    """Accepts requests from many connections and runs them on the pool.

    Accepting is cheap: each ask is handed to a thread pool. Execution is
    bounded by the pipeline pool. The number of accepted but unfinished asks
    is capped by ``max_pending``; beyond it requests are answered busy
    straight away.
    """

    def __init__(
        self,
        pool: PipelinePool,
        acquire_timeout: float = 60.0,
        max_workers: int = 32,
        max_pending: int = 256,
    ):
        self.pool = pool
        self.acquire_timeout = acquire_timeout
        self.max_pending = max_pending
        self._pending = threading.BoundedSemaphore(max_pending)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dispatch")
        logger.info(
            f"Dispatcher ready: {max_workers} workers, {max_pending} pending max, "
            f"{acquire_timeout}s acquire timeout"
        )

    def handle_message(self, message: str, send: Send) -> Optional[Future]:
        """Handle one inbound message; malformed messages are ignored."""
        try:
            verb, payload = parse_message(message)
        except MalformedRequest as e:
            logger.debug(f"Ignoring message: {e}")
            return None

        if verb == "ask":
            return self.submit(payload, send)
        return None

    def submit(self, question_text: str, send: Send) -> Optional[Future]:
        """Schedule an ask; answers busy at once when too many are pending."""
        if not self._pending.acquire(blocking=False):
            logger.warning("Too many pending requests, rejecting ask")
            self._safe_send(send, BUSY_RESPONSE)
            return None
        try:
            future = self._executor.submit(self._ask, question_text, send)
        except RuntimeError:
            self._pending.release()
            raise
        future.add_done_callback(lambda _: self._pending.release())
        return future

    def _ask(self, question_text: str, send: Send) -> None:
        try:
            pipeline = self.pool.acquire(self.acquire_timeout)
        except PoolExhausted as e:
            logger.warning(f"Dropping ask as busy: {e}")
            self._safe_send(send, BUSY_RESPONSE)
            return

        try:
            question = pipeline.ask(question_text)
            response = json.dumps(question.to_json())
        except Exception as e:
            logger.error(f"Ask failed for '{question_text[:100]}': {e}", exc_info=True)
            response = failure_response(e)
        finally:
            self.pool.release(pipeline)

        self._safe_send(send, response)

    @staticmethod
    def _safe_send(send: Send, response: str) -> None:
        try:
            send(response)
        except Exception as e:
            logger.warning(f"Could not deliver response: {e}")

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)
