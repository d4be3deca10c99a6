"""Error types raised across the question answering pipeline."""

from typing import Optional


class QAServeError(Exception):
    """Base class for all pipeline errors."""


class BackendUnavailable(QAServeError):
    """A searcher's backend could not be reached or failed."""

    def __init__(self, searcher: str, cause: Optional[BaseException] = None):
        self.searcher = searcher
        self.cause = cause
        super().__init__(f"Search backend '{searcher}' unavailable: {cause}")


class StageFailure(QAServeError):
    """A researcher or scorer raised while processing a question."""

    def __init__(self, stage: str, component: str, cause: Optional[BaseException] = None):
        self.stage = stage
        self.component = component
        self.cause = cause
        super().__init__(f"{stage} stage failed in {component}: {cause}")


class PoolExhausted(QAServeError):
    """No pipeline instance became free within the wait bound."""

    def __init__(self, timeout: Optional[float]):
        self.timeout = timeout
        super().__init__(f"No pipeline available after waiting {timeout}s")


class MalformedRequest(QAServeError):
    """An inbound message did not match the `<verb>:<payload>` format."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Malformed request: {message[:100]!r}")
