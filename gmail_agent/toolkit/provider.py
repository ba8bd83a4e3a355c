"""Tool provider boundary — Composio behind a small typed async API.

The agent only ever talks to a ``ToolProvider``.  ``ComposioToolProvider`` is
the production implementation; tests substitute an in-memory fake.
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from typing import Any, Protocol, runtime_checkable

from composio import Composio
from composio_langchain import LangchainProvider
from langchain_core.tools import BaseTool

from gmail_agent.config import Settings
from gmail_agent.errors import ServiceUnavailable
from gmail_agent.toolkit.actions import GMAIL_TOOLKIT, GmailAction
from gmail_agent.toolkit.types import Connection, ConnectionStatus, Entity

logger = logging.getLogger(__name__)


# ── Provider interface ─────────────────────────────────────────────────────────


@runtime_checkable
class ToolProvider(Protocol):
    """The five provider operations the agent depends on.

    Implementations raise ServiceUnavailable when the provider itself cannot
    be reached or rejects the request.
    """

    async def get_entity(self, user_id: str) -> Entity:
        """Resolve the provider-side handle for a user."""
        ...

    async def get_connection(self, entity: Entity) -> Connection | None:
        """Return the entity's usable Gmail connection, or None if it has none."""
        ...

    async def initiate_connection(self, entity: Entity) -> Connection:
        """Start a new Gmail authorisation; the result carries a redirect URL."""
        ...

    async def get_connection_status(self, connection_id: str) -> Connection:
        """Re-read a connection's current state."""
        ...

    async def get_actions(
        self, entity: Entity, actions: Sequence[GmailAction]
    ) -> list[BaseTool]:
        """Return LangChain tools for ``actions``, bound to the entity's connection."""
        ...


# ── Composio implementation ────────────────────────────────────────────────────


class ComposioToolProvider:
    """ToolProvider backed by the Composio SDK.

    The SDK is synchronous, so every call is pushed onto a worker thread with
    ``asyncio.to_thread`` to keep the event loop free while waiting on HTTP.

    Usage::

        provider = ComposioToolProvider.from_settings(settings)
        entity = await provider.get_entity("alice")
        connection = await provider.get_connection(entity)
    """

    def __init__(self, client: Composio, auth_config_id: str | None = None) -> None:
        self._client = client
        self._auth_config_id = auth_config_id

    @classmethod
    def from_settings(cls, settings: Settings) -> "ComposioToolProvider":
        client = Composio(api_key=settings.composio_api_key, provider=LangchainProvider())
        return cls(client, auth_config_id=settings.auth_config_id)

    # ── Public API ─────────────────────────────────────────────────────────────

    async def get_entity(self, user_id: str) -> Entity:
        # Composio scopes connections and tools by user_id directly; there is
        # no separate entity record to fetch.
        return Entity(id=user_id)

    async def get_connection(self, entity: Entity) -> Connection | None:
        """Return the entity's Gmail connection, preferring an active one.

        Dead (failed/expired/inactive) accounts are ignored; if only those
        exist the entity is treated as having no connection.
        """
        page = await self._call(
            "list connected accounts",
            self._client.connected_accounts.list,
            user_ids=[entity.id],
            toolkit_slugs=[GMAIL_TOOLKIT],
        )
        connections = [_to_connection(item) for item in _items(page)]
        usable = [c for c in connections if not c.status.is_dead]
        if not usable:
            logger.debug("No usable Gmail connection for %s (%d dead)", entity.id, len(connections))
            return None
        for connection in usable:
            if connection.is_active:
                return connection
        return usable[0]

    async def initiate_connection(self, entity: Entity) -> Connection:
        """Start Gmail OAuth for the entity.

        Uses the configured auth config when one is set, otherwise lets
        Composio pick its managed Gmail auth config.
        """
        if self._auth_config_id:
            request = await self._call(
                "initiate connection",
                self._client.connected_accounts.initiate,
                user_id=entity.id,
                auth_config_id=self._auth_config_id,
            )
        else:
            request = await self._call(
                "authorize toolkit",
                self._client.toolkits.authorize,
                user_id=entity.id,
                toolkit=GMAIL_TOOLKIT,
            )
        connection = _to_connection(request)
        logger.info("Initiated Gmail connection %s for %s", connection.id, entity.id)
        return connection

    async def get_connection_status(self, connection_id: str) -> Connection:
        account = await self._call(
            "get connected account", self._client.connected_accounts.get, connection_id
        )
        return _to_connection(account)

    async def get_actions(
        self, entity: Entity, actions: Sequence[GmailAction]
    ) -> list[BaseTool]:
        slugs = [GmailAction(a).value for a in actions]
        tools = await self._call(
            "get tools", self._client.tools.get, user_id=entity.id, tools=slugs
        )
        logger.debug("Fetched %d tool(s) for %s: %s", len(tools), entity.id, slugs)
        return list(tools)

    # ── Internal helpers ───────────────────────────────────────────────────────

    async def _call(self, what: str, func: Any, *args: Any, **kwargs: Any) -> Any:
        """Run a blocking SDK call on a thread; wrap any failure as ServiceUnavailable."""
        logger.debug("Composio → %s %s %s", what, args, kwargs)
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except Exception as exc:  # noqa: BLE001
            raise ServiceUnavailable(f"Composio {what} failed: {exc}") from exc


def _items(page: Any) -> Iterable[Any]:
    """Accept either a paginated response (``.items``) or a plain list."""
    items = getattr(page, "items", page)
    return items or []


def _to_connection(obj: Any) -> Connection:
    """Map a Composio connected-account / connection-request object to a Connection."""
    raw_status = str(getattr(obj, "status", "") or "").upper()
    try:
        status = ConnectionStatus(raw_status)
    except ValueError:
        logger.warning("Unknown connection status %r; treating as pending", raw_status)
        status = ConnectionStatus.INITIATED
    redirect = getattr(obj, "redirect_url", None)
    return Connection(
        id=str(obj.id),
        status=status,
        redirect_url=str(redirect) if redirect else None,
    )
