"""Shared fixtures for dbquery tests."""

import os

os.environ.setdefault("DBQUERY_TEST_MODE", "true")

import pytest

from dbquery.api import Database
from dbquery.constants.dml import EngineAction
from dbquery.execution import EngineResponse
from dbquery.settings import _Settings


class FakeEngine:
    """Records engine invocations and answers from a scripted queue.

    Queue entries are EngineResponse objects, exceptions to raise, or
    callables ``(action, dml) -> EngineResponse``. An empty queue answers
    with status 200 and no rows.
    """

    def __init__(self):
        self.calls = []
        self.responses = []

    async def run(self, action, dml=None):
        self.calls.append((action, dml))
        if not self.responses:
            return EngineResponse(status=200, data=[])
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(action, dml)
        return response

    @property
    def executed(self):
        return [dml for action, dml in self.calls if action == EngineAction.EXECUTE]


@pytest.fixture
def settings(tmp_path):
    """Settings isolated to a temporary project directory."""
    return _Settings(
        _env_file=None,
        project_dir=tmp_path,
        pretty_errors=False,
        connect_retry_delay_seconds=0,
    )


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def db(engine, settings):
    return Database("shop", engine=engine, settings=settings)


@pytest.fixture
def users(db):
    return db.table("users")
