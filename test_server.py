#!/usr/bin/env python3
"""Tests for the WebSocket transport."""

import json
import threading
import time

from fastapi.testclient import TestClient

from qaserve import server
from qaserve.dispatcher import Dispatcher
from qaserve.models import Passage, Question
from qaserve.pipeline import PipelineStages
from qaserve.pool import PipelinePool
from qaserve.server import create_app


class FakePipeline:
    def __init__(self, stages):
        self.stages = stages

    def ask(self, text):
        question = Question(text)
        question.add_passages([Passage(title="1215", text="sealed in 1215", source="fake")])
        question.answers[0].set_score("combined", 0.8)
        return question

    def close(self):
        pass


def make_client():
    pool = PipelinePool(PipelineStages(), size=2, factory=FakePipeline)
    dispatcher = Dispatcher(pool, acquire_timeout=1, max_workers=2)
    return TestClient(create_app(dispatcher)), dispatcher


def test_health():
    client, dispatcher = make_client()

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "pool_size": 2, "available": 2}
    dispatcher.shutdown()


def test_ask_over_websocket():
    client, dispatcher = make_client()

    with client.websocket_connect("/") as websocket:
        websocket.send_text("hello there")
        websocket.send_text("ask:When was the Magna Carta signed?")
        answers = json.loads(websocket.receive_text())

    assert answers == [{"text": "1215", "scores": {"combined": 0.8}, "passages": 1}]
    dispatcher.shutdown()


class BlockingPipeline(FakePipeline):
    release = threading.Event()

    def ask(self, text):
        self.release.wait(5)
        return super().ask(text)


def test_busy_reply_does_not_stall_the_connection(monkeypatch):
    monkeypatch.setattr(server, "SEND_TIMEOUT", 5)
    BlockingPipeline.release.clear()
    pool = PipelinePool(PipelineStages(), size=1, factory=BlockingPipeline)
    dispatcher = Dispatcher(pool, acquire_timeout=1, max_workers=2, max_pending=1)
    client = TestClient(create_app(dispatcher))

    try:
        with client.websocket_connect("/") as websocket:
            start = time.monotonic()
            websocket.send_text("ask:When was the Magna Carta signed?")
            websocket.send_text("ask:Who sealed the Magna Carta?")
            busy = json.loads(websocket.receive_text())
            elapsed = time.monotonic() - start

            BlockingPipeline.release.set()
            answers = json.loads(websocket.receive_text())
    finally:
        BlockingPipeline.release.set()
        dispatcher.shutdown()

    assert busy == {"error": "busy"}
    assert elapsed < 2
    assert answers[0]["text"] == "1215"
