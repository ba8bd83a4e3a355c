"""Error taxonomy for the Gmail agent.

Nothing here is retried internally — every error propagates to the caller of
``GmailAgent.run_instruction`` (or the CLI), which decides what to do next.
"""


class GmailAgentError(Exception):
    """Base class for every error the agent surfaces to its caller."""


class ConfigurationError(GmailAgentError):
    """Raised when required settings (API keys, numeric options) are missing or invalid."""


# ── Connection step ────────────────────────────────────────────────────────────


class AccountConnectionError(GmailAgentError):
    """Base for failures while obtaining or using a Gmail connection."""


class AuthorizationTimeout(AccountConnectionError):
    """Raised when a pending connection does not become active within the poll bound."""


class AuthorizationFailed(AccountConnectionError):
    """Raised when a pending connection ends up failed, expired or inactive."""


class ServiceUnavailable(AccountConnectionError):
    """Raised when a tool-provider call (lookup, initiate, status, actions) fails."""


# ── Agent step ─────────────────────────────────────────────────────────────────


class ModelInvocationError(GmailAgentError):
    """Raised when the chat-completion call fails (bad credentials, rate limit, ...)."""


class ToolExecutionError(GmailAgentError):
    """Raised when a Gmail action invoked by the agent fails."""
