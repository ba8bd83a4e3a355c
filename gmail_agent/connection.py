"""Connection ensurer — make sure a user has an active Gmail connection."""

import asyncio
import logging
from collections.abc import Callable

from gmail_agent.errors import AuthorizationFailed, AuthorizationTimeout
from gmail_agent.toolkit.provider import ToolProvider
from gmail_agent.toolkit.types import Connection, Entity

logger = logging.getLogger(__name__)

#: Receives the consent URL when a new authorisation has to be completed.
RedirectHandler = Callable[[str], None]


async def ensure_connection(
    provider: ToolProvider,
    user_id: str,
    *,
    poll_interval: float,
    max_attempts: int,
    on_redirect: RedirectHandler | None = None,
    entity: Entity | None = None,
) -> Connection:
    """Return an active Gmail connection for ``user_id``, creating one if needed.

    - Active connection already on file: returned straight away.
    - Pending connection on file: waited on; no new authorisation is started.
    - No connection: one authorisation is initiated, its redirect URL is
      logged and handed to ``on_redirect``, then the connection is waited on.

    Pass ``entity`` when the caller has already resolved it for ``user_id``.

    The wait is a plain coroutine, so callers can bound it further with
    ``asyncio.wait_for`` or cancel the task.

    Raises:
        ValueError: if ``user_id`` is empty.
        AuthorizationTimeout: if the connection is still pending after
            ``max_attempts`` polls.
        AuthorizationFailed: if the connection fails or expires while waiting.
        ServiceUnavailable: if a provider call fails.
    """
    if not user_id or not user_id.strip():
        raise ValueError("user_id must be a non-empty string")

    if entity is None:
        entity = await provider.get_entity(user_id)
    connection = await provider.get_connection(entity)

    if connection is not None:
        if connection.is_active:
            logger.debug("Gmail connection %s already active for %s", connection.id, user_id)
            return connection
        logger.info(
            "Gmail connection %s for %s is %s — waiting for it to activate",
            connection.id,
            user_id,
            connection.status.value,
        )
        return await wait_until_active(
            provider, connection, poll_interval=poll_interval, max_attempts=max_attempts
        )

    connection = await provider.initiate_connection(entity)
    if connection.redirect_url:
        logger.warning("Gmail authorisation required for %s — log in via: %s",
                       user_id, connection.redirect_url)
        if on_redirect is not None:
            on_redirect(connection.redirect_url)
    else:
        logger.warning("Gmail connection %s initiated without a redirect URL", connection.id)

    if connection.is_active:
        return connection
    return await wait_until_active(
        provider, connection, poll_interval=poll_interval, max_attempts=max_attempts
    )


async def wait_until_active(
    provider: ToolProvider,
    connection: Connection,
    *,
    poll_interval: float,
    max_attempts: int,
) -> Connection:
    """Poll the connection every ``poll_interval`` seconds until it is ACTIVE.

    Sleeps with ``asyncio.sleep`` between polls so other tasks keep running;
    cancelling the awaiting task stops the loop at the next suspension point.
    """
    for attempt in range(1, max_attempts + 1):
        await asyncio.sleep(poll_interval)
        current = await provider.get_connection_status(connection.id)
        if current.is_active:
            logger.info("Gmail connection %s active after %d poll(s)", current.id, attempt)
            return current
        if current.status.is_dead:
            raise AuthorizationFailed(
                f"Gmail connection {connection.id} ended in state {current.status.value}"
            )
        logger.debug(
            "Connection %s still %s (poll %d/%d)",
            connection.id,
            current.status.value,
            attempt,
            max_attempts,
        )

    raise AuthorizationTimeout(
        f"Gmail connection {connection.id} was not activated after "
        f"{max_attempts} poll(s) at {poll_interval}s intervals"
    )
