"""WebSocket transport for the dispatcher.

Clients send text frames such as ``ask:When was the Magna Carta signed?``
and receive a JSON array of ranked answers on the same socket.
"""

import asyncio
import logging
import threading

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from .config import Config
from .dispatcher import Dispatcher
from .pipeline import default_stages
from .pool import PipelinePool

logger = logging.getLogger(__name__)

SEND_TIMEOUT = 30


def build_dispatcher(config: Config) -> Dispatcher:
    """Build the stage lists, the pipeline pool and the dispatcher once."""
    config.ensure_directories()
    stages = default_stages(config)
    pool = PipelinePool(stages, size=config.pool_size)
    return Dispatcher(
        pool,
        acquire_timeout=config.acquire_timeout,
        max_workers=config.dispatch_workers,
        max_pending=config.max_pending_requests,
    )


def create_app(dispatcher: Dispatcher) -> FastAPI:
    app = FastAPI(
        title="qaserve",
        description="Question answering over multiple search backends",
        version="0.1.0",
    )

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "pool_size": dispatcher.pool.size,
            "available": dispatcher.pool.available,
        }

    @app.websocket("/")
    async def questions(websocket: WebSocket):
        await websocket.accept()
        loop = asyncio.get_running_loop()
        loop_thread = threading.get_ident()
        pending_sends = set()

        def send(text: str) -> None:
            if threading.get_ident() == loop_thread:
                # Immediate replies (busy) come from the receive loop itself,
                # which must not block waiting on its own loop.
                task = loop.create_task(websocket.send_text(text))
                pending_sends.add(task)
                task.add_done_callback(pending_sends.discard)
                return
            future = asyncio.run_coroutine_threadsafe(websocket.send_text(text), loop)
            future.result(timeout=SEND_TIMEOUT)

        try:
            while True:
                message = await websocket.receive_text()
                logger.debug(f"Received: {message[:100]}")
                dispatcher.handle_message(message, send)
        except WebSocketDisconnect:
            # In-flight asks keep running; their responses are discarded.
            logger.debug("Client disconnected")

    return app
