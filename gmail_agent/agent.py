"""Agent invoker — run one natural-language instruction against Gmail."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

import anthropic
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.runnables import Runnable
from langchain_core.tools import BaseTool, StructuredTool, ToolException
from langgraph.prebuilt import ToolNode, create_react_agent
from langgraph.prebuilt.chat_agent_executor import AgentState

from gmail_agent.config import Settings
from gmail_agent.connection import RedirectHandler, ensure_connection
from gmail_agent.errors import ModelInvocationError, ToolExecutionError
from gmail_agent.toolkit.actions import ALLOWED_ACTIONS
from gmail_agent.toolkit.provider import ToolProvider

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an AI email assistant that can write, fetch, and manage emails and "
    "labels. Follow the user's instructions carefully and perform the requested "
    "actions. When fetching emails, present each email's subject and content in "
    "a readable format."
)

#: Builds the runnable agent from a chat model, its tools and the prompt.
AgentFactory = Callable[[BaseChatModel, Sequence[BaseTool], ChatPromptTemplate], Runnable]


# ── Building blocks ────────────────────────────────────────────────────────────


class InstructionState(AgentState):
    """Agent graph state: the human instruction plus the running message scratchpad."""

    input: str


def build_prompt() -> ChatPromptTemplate:
    """System instruction, the human input, then the tool-call scratchpad."""
    return ChatPromptTemplate.from_messages(
        [
            ("system", SYSTEM_PROMPT),
            ("human", "{input}"),
            ("placeholder", "{messages}"),
        ]
    )


def build_chat_model(settings: Settings) -> ChatAnthropic:
    """Anthropic chat model for the agent.

    ``max_retries=0``: failures surface immediately as ModelInvocationError and
    retry policy belongs to the caller.
    """
    return ChatAnthropic(
        model=settings.model,
        api_key=settings.anthropic_api_key,
        max_tokens=settings.max_tokens,
        max_retries=0,
    )


def build_agent(
    model: BaseChatModel,
    tools: Sequence[BaseTool],
    prompt: ChatPromptTemplate,
) -> Runnable:
    """Prebuilt LangGraph tool-calling agent.

    Tool errors are not fed back to the model; they abort the run so the
    caller sees them as ToolExecutionError.
    """
    return create_react_agent(
        model,
        ToolNode(list(tools), handle_tool_errors=False),
        prompt=prompt,
        state_schema=InstructionState,
    )


# ── Invoker ────────────────────────────────────────────────────────────────────


class GmailAgent:
    """Runs a single instruction for a user with the allow-listed Gmail actions.

    WARNING: a run may send real email, create real drafts or create real
    labels in the user's account.  Point it at a sandbox account when testing.

    Usage::

        agent = GmailAgent(provider, build_chat_model(settings),
                           poll_interval=settings.poll_interval,
                           max_attempts=settings.max_attempts)
        text = await agent.run_instruction("alice", "Send a mail to a@example.com saying hi")
    """

    def __init__(
        self,
        provider: ToolProvider,
        model: BaseChatModel,
        *,
        poll_interval: float = 1.0,
        max_attempts: int = 100,
        on_redirect: RedirectHandler | None = None,
        agent_factory: AgentFactory = build_agent,
    ) -> None:
        self._provider = provider
        self._model = model
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._on_redirect = on_redirect
        self._agent_factory = agent_factory

    async def run_instruction(self, user_id: str, instruction: str) -> str:
        """Ensure the user's Gmail connection, then run one agent turn.

        Raises:
            ValueError: if ``user_id`` or ``instruction`` is empty.
            AccountConnectionError: if the connection cannot be established.
            ModelInvocationError: if the chat-completion call fails.
            ToolExecutionError: if a Gmail action fails.
        """
        if not user_id or not user_id.strip():
            raise ValueError("user_id must be a non-empty string")
        if not instruction or not instruction.strip():
            raise ValueError("instruction must be a non-empty string")

        entity = await self._provider.get_entity(user_id)
        await ensure_connection(
            self._provider,
            entity.id,
            entity=entity,
            poll_interval=self._poll_interval,
            max_attempts=self._max_attempts,
            on_redirect=self._on_redirect,
        )

        fetched = await self._provider.get_actions(entity, ALLOWED_ACTIONS)
        tools = [_raise_on_failure(tool) for tool in _allowed_only(fetched)]
        agent = self._agent_factory(self._model, tools, build_prompt())

        logger.info("Running instruction for %s with %d tool(s)", entity.id, len(tools))
        try:
            state = await agent.ainvoke({"input": instruction, "messages": []})
        except anthropic.APIError as exc:
            raise ModelInvocationError(f"Chat model call failed: {exc}") from exc
        except ToolException as exc:
            raise ToolExecutionError(f"Gmail action failed: {exc}") from exc

        messages: list[BaseMessage] = list(state.get("messages", []))
        _log_tool_calls(messages)
        return _final_text(messages)


def _allowed_only(tools: Sequence[BaseTool]) -> list[BaseTool]:
    """Drop any tool the provider returned that is not on the allow-list."""
    allowed = {a.value for a in ALLOWED_ACTIONS}
    kept = []
    for tool in tools:
        if tool.name in allowed:
            kept.append(tool)
        else:
            logger.warning("Ignoring tool %r outside the Gmail allow-list", tool.name)
    return kept


def _raise_on_failure(tool: BaseTool) -> BaseTool:
    """Wrap a Gmail tool so a failed action aborts the run.

    Composio tools report failure as ``{"successful": False, "error": ...}``
    and turn their own exceptions into text for the model.  The wrapper
    raises ToolExecutionError for both instead.
    """
    inner = tool.model_copy(update={"handle_tool_error": False})
    if tool.args_schema is None:
        return inner

    def _check(result: Any) -> Any:
        if isinstance(result, dict) and result.get("successful") is False:
            raise ToolExecutionError(
                f"Gmail action {tool.name} failed: {result.get('error') or 'unknown error'}"
            )
        return result

    def _run(**kwargs: Any) -> Any:
        try:
            result = inner.invoke(kwargs)
        except ToolExecutionError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ToolExecutionError(f"Gmail action {tool.name} failed: {exc}") from exc
        return _check(result)

    async def _arun(**kwargs: Any) -> Any:
        try:
            result = await inner.ainvoke(kwargs)
        except ToolExecutionError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ToolExecutionError(f"Gmail action {tool.name} failed: {exc}") from exc
        return _check(result)

    return StructuredTool(
        name=tool.name,
        description=tool.description,
        args_schema=tool.args_schema,
        func=_run,
        coroutine=_arun,
    )


def _log_tool_calls(messages: Sequence[BaseMessage]) -> None:
    for message in messages:
        if isinstance(message, AIMessage):
            for call in message.tool_calls:
                logger.info("Tool call: %s %s", call["name"], call["args"])


def _final_text(messages: Sequence[BaseMessage]) -> str:
    """Text of the last AI message; content blocks are joined."""
    for message in reversed(messages):
        if isinstance(message, AIMessage):
            return _content_text(message.content).strip()
    return ""


def _content_text(content: str | list[Any]) -> str:
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "\n".join(parts)
