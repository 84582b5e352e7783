"""Shared fixtures."""

import asyncio

import pytest

from core.database import create_db_engine, create_session_factory, init_db
from utils.classroom_manager import ClassroomManager


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def classroom_manager(session_factory) -> ClassroomManager:
    return ClassroomManager(session_factory)


class FakeProvider:
    """Stand-in provider returning a canned answer and recording calls."""

    def __init__(self, text="basic.showNumber(1)", error=None, delay=0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls = []
        self.cancelled = False

    async def generate(self, model, system_prompt, user_prompt):
        self.calls.append((model, system_prompt, user_prompt))
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()
