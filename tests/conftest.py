"""Shared pytest fixtures."""

import asyncio

import pytest
from langchain_core.tools import BaseTool

from gmail_agent.errors import ServiceUnavailable
from gmail_agent.toolkit.actions import GmailAction
from gmail_agent.toolkit.types import Connection, ConnectionStatus, Entity

REDIRECT_URL = "https://auth.example.com/consent/conn_new"


class FakeToolProvider:
    """In-memory ToolProvider that records every call.

    A new connection stays INITIATED until ``activate()`` is called (or forever,
    if it never is).  Setting ``dead_status`` makes every status poll report
    that state instead.
    """

    def __init__(
        self,
        existing: Connection | None = None,
        tools: list[BaseTool] | None = None,
    ) -> None:
        self.existing = existing
        self.tools = tools or []
        self.calls: list[str] = []
        self.requested_actions: list[list[GmailAction]] = []
        self.fail_on: set[str] = set()
        self.dead_status: ConnectionStatus | None = None
        self._activated = asyncio.Event()

    def activate(self) -> None:
        self._activated.set()

    def count(self, name: str) -> int:
        return self.calls.count(name)

    async def get_entity(self, user_id: str) -> Entity:
        self._record("get_entity")
        return Entity(id=user_id)

    async def get_connection(self, entity: Entity) -> Connection | None:
        self._record("get_connection")
        return self.existing

    async def initiate_connection(self, entity: Entity) -> Connection:
        self._record("initiate_connection")
        return Connection(id="conn_new", status=ConnectionStatus.INITIATED, redirect_url=REDIRECT_URL)

    async def get_connection_status(self, connection_id: str) -> Connection:
        self._record("get_connection_status")
        if self.dead_status is not None:
            return Connection(id=connection_id, status=self.dead_status)
        status = ConnectionStatus.ACTIVE if self._activated.is_set() else ConnectionStatus.INITIATED
        return Connection(id=connection_id, status=status)

    async def get_actions(self, entity: Entity, actions: list[GmailAction]) -> list[BaseTool]:
        self._record("get_actions")
        self.requested_actions.append(list(actions))
        return list(self.tools)

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise ServiceUnavailable(f"{name} failed")


@pytest.fixture
def active_connection() -> Connection:
    return Connection(id="conn_active", status=ConnectionStatus.ACTIVE)


@pytest.fixture
def provider() -> FakeToolProvider:
    """Provider for a user with no Gmail connection yet."""
    return FakeToolProvider()


@pytest.fixture
def connected_provider(active_connection: Connection) -> FakeToolProvider:
    """Provider for a user whose Gmail connection is already active."""
    return FakeToolProvider(existing=active_connection)
