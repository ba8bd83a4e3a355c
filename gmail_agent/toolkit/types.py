"""Data types shared by the tool provider and the connection ensurer."""

from dataclasses import dataclass
from enum import Enum


class ConnectionStatus(str, Enum):
    """Lifecycle state of a connected Gmail account, as reported by the provider."""

    INITIALIZING = "INITIALIZING"
    INITIATED = "INITIATED"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    INACTIVE = "INACTIVE"

    @property
    def is_pending(self) -> bool:
        return self in (ConnectionStatus.INITIALIZING, ConnectionStatus.INITIATED)

    @property
    def is_dead(self) -> bool:
        return self in (ConnectionStatus.FAILED, ConnectionStatus.EXPIRED, ConnectionStatus.INACTIVE)


@dataclass(frozen=True)
class Entity:
    """The provider-side handle for one end user."""

    id: str


@dataclass(frozen=True)
class Connection:
    """An authorised (or authorising) link between an entity and Gmail.

    ``redirect_url`` is only set on a freshly initiated connection: the user
    must visit it to grant consent before the status moves to ACTIVE.
    """

    id: str
    status: ConnectionStatus
    redirect_url: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == ConnectionStatus.ACTIVE
