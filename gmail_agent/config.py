"""Runtime settings, read from the environment (and ``.env`` via the CLI)."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass

from gmail_agent.errors import ConfigurationError

DEFAULT_MODEL = "claude-sonnet-4-6"

_REQUIRED_VARS = ("COMPOSIO_API_KEY", "ANTHROPIC_API_KEY")


@dataclass(frozen=True)
class Settings:
    """Credentials and tunables for one agent process.

    Built once at startup and passed explicitly to the provider and agent —
    there is no module-level client.
    """

    composio_api_key: str
    anthropic_api_key: str
    model: str = DEFAULT_MODEL
    max_tokens: int = 2048
    auth_config_id: str | None = None
    poll_interval: float = 1.0
    max_attempts: int = 100
    default_user_id: str = "default"

    @classmethod
    def from_env(cls) -> Settings:
        """Build Settings from environment variables.

        Raises:
            ConfigurationError: if an API key is missing, or a numeric option
                is not a positive number.
        """
        missing = [name for name in _REQUIRED_VARS if not os.environ.get(name, "").strip()]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variable(s): {', '.join(missing)}"
            )

        return cls(
            composio_api_key=os.environ["COMPOSIO_API_KEY"].strip(),
            anthropic_api_key=os.environ["ANTHROPIC_API_KEY"].strip(),
            model=os.environ.get("GMAIL_AGENT_MODEL", "").strip() or DEFAULT_MODEL,
            max_tokens=int(_positive("GMAIL_AGENT_MAX_TOKENS", "2048", int)),
            auth_config_id=os.environ.get("COMPOSIO_AUTH_CONFIG_ID", "").strip() or None,
            poll_interval=_positive("GMAIL_AGENT_POLL_INTERVAL", "1.0", float),
            max_attempts=int(_positive("GMAIL_AGENT_MAX_ATTEMPTS", "100", int)),
            default_user_id=os.environ.get("GMAIL_AGENT_USER_ID", "").strip() or "default",
        )


def _positive(name: str, default: str, cast: type[int] | type[float]) -> float:
    raw = os.environ.get(name, default)
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be a finite number, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value
