"""Agent orchestrator: one chat turn from inbound message to reply.

A turn runs Routing -> ModelInvocation -> (ToolExecution -> ModelInvocation)*
-> ReplyReady while holding the session's lease. Every tool step is committed
before the model is invoked again, so the history the model sees is always what
actually happened, and a turn that is cancelled or runs out of iterations keeps
the draft changes made so far.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from brewchat.core.config import Settings, settings as default_settings
from brewchat.core.errors import ModelUnavailable, NotFound, ValidationError
from brewchat.core.retry import with_retries
from brewchat.services.agent.constants import (
    EMPTY_REPLY,
    GENERIC_FAILURE_REPLY,
    LOOP_EXHAUSTED_REPLY,
)
from brewchat.services.agent.model import LanguageModel, ModelResponse, TextReply, ToolCall
from brewchat.services.agent.modes import AgentMode
from brewchat.services.agent.prompt import get_system_prompt
from brewchat.services.agent.registry import ToolExecutor
from brewchat.services.agent.router import ModeRouter
from brewchat.services.catalog.repository import CatalogRepository
from brewchat.services.ordering.summary import format_draft_summary
from brewchat.services.session.locks import SessionLockRegistry
from brewchat.services.session.models import (
    ChatMessage,
    MessageRole,
    Session,
    ToolCallPayload,
)
from brewchat.services.session.store import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class TurnResult:
    """What the chat endpoint returns for one turn."""

    session_id: str
    reply: str
    mode: AgentMode
    draft_summary: Optional[str] = None
    draft_status: Optional[str] = None
    tool_calls: int = 0
    exhausted: bool = False
    failed: bool = False


class AgentOrchestrator:
    """Drives the conversational state machine for one session turn."""

    def __init__(
        self,
        store: SessionStore,
        catalog: CatalogRepository,
        executor: ToolExecutor,
        model: LanguageModel,
        locks: SessionLockRegistry,
        router: Optional[ModeRouter] = None,
        settings: Settings = default_settings,
    ):
        self.store = store
        self.catalog = catalog
        self.executor = executor
        self.model = model
        self.locks = locks
        self.router = router or ModeRouter(catalog)
        self.settings = settings

    async def handle_turn(
        self, principal: str, message: str, session_id: Optional[str] = None
    ) -> TurnResult:
        """
        Process one inbound chat message.

        Args:
            principal: Verified caller identity
            message: Customer's text
            session_id: Conversation id; a new session is created when absent
                or not yet known

        Returns:
            TurnResult with the reply and draft summary
        """
        if not message or not message.strip():
            raise ValidationError("Message must not be empty.")
        session_id = session_id or uuid.uuid4().hex

        async with self.locks.hold(session_id, wait=self.settings.session_lock_wait_seconds) as lease:
            session = await self._load_or_create(session_id, principal)

            logger.info("=" * 80)
            logger.info(
                f"[ORCHESTRATOR] Turn start - Session: {session_id}, Mode: {session.mode.value}, "
                f"Lease: {lease.generation}"
            )
            logger.info(f"[ORCHESTRATOR] User message: '{message}'")

            session = await self._retry(
                lambda: self.store.append(
                    session_id, ChatMessage(role=MessageRole.USER, content=message.strip())
                ),
                "append user message",
            )
            session = await self._route(session, message)
            result = await self._run_loop(session)

            logger.info(
                f"[ORCHESTRATOR] Turn end - Session: {session_id}, Mode: {result.mode.value}, "
                f"Tool calls: {result.tool_calls}, Exhausted: {result.exhausted}, "
                f"Failed: {result.failed}"
            )
            logger.info("=" * 80)
            return result

    async def _load_or_create(self, session_id: str, principal: str) -> Session:
        session = await self._retry(lambda: self.store.load(session_id), "load session")
        if session is None:
            return await self._retry(
                lambda: self.store.create(owner=principal, session_id=session_id),
                "create session",
            )
        if session.owner != principal:
            # Same answer as a missing session; do not reveal that it exists
            raise NotFound(f"Session {session_id} not found")
        return session

    async def _route(self, session: Session, message: str) -> Session:
        mode = await self.router.route(session, message)
        if mode == session.mode:
            return session
        logger.info(
            f"[ORCHESTRATOR] Mode switch - Session: {session.id}, "
            f"{session.mode.value} -> {mode.value}"
        )
        return await self._retry(
            lambda: self.store.switch_mode(session.id, mode), "switch mode"
        )

    async def _run_loop(self, session: Session) -> TurnResult:
        max_iterations = self.settings.max_tool_iterations
        tool_calls = 0

        # One extra invocation lets the model answer after its last permitted tool
        for iteration in range(max_iterations + 1):
            try:
                response = await self._invoke_model(session)
            except ModelUnavailable:
                logger.error(
                    f"[ORCHESTRATOR] Model unavailable, ending turn - Session: {session.id}",
                    exc_info=True,
                )
                return await self._reply(session, GENERIC_FAILURE_REPLY, tool_calls, failed=True)

            if isinstance(response, TextReply):
                return await self._reply(session, response.text or EMPTY_REPLY, tool_calls)

            if iteration == max_iterations:
                break
            tool_calls += 1
            session = await self._execute_tool_step(session, response)

        logger.warning(
            f"[ORCHESTRATOR] Tool loop exhausted after {max_iterations} calls - "
            f"Session: {session.id}; partial draft kept "
            f"({len(session.draft.items) if session.draft else 0} line(s))"
        )
        return await self._reply(session, LOOP_EXHAUSTED_REPLY, tool_calls, exhausted=True)

    async def _invoke_model(self, session: Session) -> ModelResponse:
        catalog_text = await self.catalog.get_catalog_text()
        system_prompt = get_system_prompt(
            session.mode,
            catalog_text,
            format_draft_summary(session.active_draft, self.settings.tax_rate),
            self.settings.shop_name,
        )
        tools = self.executor.schemas_for(session.mode)
        return await self._retry(
            lambda: self.model.complete(system_prompt, session.messages, tools),
            "model invocation",
            retry_on=(ModelUnavailable,),
        )

    async def _execute_tool_step(self, session: Session, call: ToolCall) -> Session:
        """Run one tool and commit call, result and draft together."""

        async def step() -> Session:
            # Tools are retry-safe: re-running against the same state gives the same draft
            execution = await self.executor.execute(call, session)
            call_message = ChatMessage(
                role=MessageRole.AGENT,
                tool_call=ToolCallPayload(
                    id=call.id,
                    name=call.name,
                    arguments=call.arguments,
                    raw_arguments=call.raw_arguments or None,
                ),
            )
            result_message = ChatMessage(role=MessageRole.TOOL, tool_result=execution.result)
            return await self.store.record_tool_step(
                session.id, call_message, result_message, execution.draft
            )

        updated = await self._retry(step, f"tool step {call.name}")
        last = updated.messages[-1].tool_result
        logger.info(
            f"[ORCHESTRATOR] Tool {call.name} -> {'ok' if last.ok else last.error_kind} - "
            f"Session: {session.id}"
        )
        return updated

    async def _reply(
        self,
        session: Session,
        text: str,
        tool_calls: int,
        exhausted: bool = False,
        failed: bool = False,
    ) -> TurnResult:
        session = await self._retry(
            lambda: self.store.append(session.id, ChatMessage(role=MessageRole.AGENT, content=text)),
            "append reply",
        )
        logger.info(f"[ORCHESTRATOR] Reply: '{text}'")
        draft = session.draft
        return TurnResult(
            session_id=session.id,
            reply=text,
            mode=session.mode,
            draft_summary=format_draft_summary(draft, self.settings.tax_rate) if draft and draft.is_active else None,
            draft_status=draft.status.value if draft else None,
            tool_calls=tool_calls,
            exhausted=exhausted,
            failed=failed,
        )

    async def _retry(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str,
        retry_on=None,
    ) -> T:
        kwargs = {"retry_on": retry_on} if retry_on else {}
        return await with_retries(
            operation,
            attempts=self.settings.infra_retry_attempts,
            backoff=self.settings.infra_retry_backoff_seconds,
            description=description,
            **kwargs,
        )
