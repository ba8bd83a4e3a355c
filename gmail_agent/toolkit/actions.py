"""The closed set of Gmail actions the agent is allowed to use."""

from enum import Enum


class GmailAction(str, Enum):
    """A Gmail action exposed by the tool provider.

    Values are the provider's action slugs, so a member can be sent over the
    wire as-is.  ``GmailAction("GMAIL_DELETE_MESSAGE")`` raises ValueError —
    anything outside this enum is rejected before it reaches the provider.
    """

    SEND_EMAIL = "GMAIL_SEND_EMAIL"
    FETCH_EMAILS = "GMAIL_FETCH_EMAILS"
    CREATE_DRAFT = "GMAIL_CREATE_EMAIL_DRAFT"
    CREATE_LABEL = "GMAIL_CREATE_LABEL"


#: Every action the agent requests, in a stable order.
ALLOWED_ACTIONS: tuple[GmailAction, ...] = tuple(GmailAction)

#: Toolkit slug the connections and actions are scoped to.
GMAIL_TOOLKIT = "gmail"
