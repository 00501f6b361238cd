"""Session persistence service."""
import logging
import uuid
from typing import Callable, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brewchat.core.errors import NotFound, SessionBusy, StoreUnavailable
from brewchat.db.models import SessionRecord
from brewchat.services.agent.modes import AgentMode
from brewchat.services.ordering.models import OrderDraft
from brewchat.services.session.models import ChatMessage, Session, utcnow

logger = logging.getLogger(__name__)


class SessionStore:
    """Durable per-conversation state.

    Every mutation loads the session document, applies the change to the
    domain model and writes it back with a compare-and-set on ``version`` in a
    single transaction. Losing that race means another writer got there first
    and surfaces as ``SessionBusy``.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load(self, session_id: str) -> Optional[Session]:
        """Get a session by id, or None if it does not exist yet."""
        try:
            record = await self._get_record(session_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[SESSION STORE] Load failed - Session: {session_id}, Error: {e}")
            raise StoreUnavailable("Session store is unavailable") from e
        return self._to_domain(record) if record else None

    async def create(self, owner: str, session_id: Optional[str] = None) -> Session:
        """Create a new, empty session."""
        now = utcnow()
        record = SessionRecord(
            id=session_id or uuid.uuid4().hex,
            owner=owner,
            mode=AgentMode.RECOMMENDATION.value,
            messages=[],
            draft=None,
            draft_sequence=0,
            version=0,
            created_at=now,
            updated_at=now,
        )
        self.db.add(record)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise SessionBusy(f"Session {record.id} is being created by another request") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[SESSION STORE] Create failed - Session: {record.id}, Error: {e}")
            raise StoreUnavailable("Session store is unavailable") from e
        logger.info(f"[SESSION STORE] Created session {record.id} for owner {owner}")
        return self._to_domain(record)

    async def append(self, session_id: str, message: ChatMessage) -> Session:
        """Append one message to the history."""
        return await self.apply(session_id, lambda session: session.append_message(message))

    async def upsert_draft(self, session_id: str, draft: Optional[OrderDraft]) -> Session:
        """Replace the session's draft."""
        return await self.apply(session_id, lambda session: session.set_draft(draft))

    async def switch_mode(self, session_id: str, mode: AgentMode) -> Session:
        """Record an agent mode transition."""
        return await self.apply(session_id, lambda session: session.switch_mode(mode))

    async def record_tool_step(
        self,
        session_id: str,
        call_message: ChatMessage,
        result_message: ChatMessage,
        draft: Optional[OrderDraft] = None,
    ) -> Session:
        """Commit a tool call, its result and the draft it produced together."""

        def _mutate(session: Session) -> None:
            session.append_message(call_message)
            session.append_message(result_message)
            if draft is not None:
                session.set_draft(draft)

        return await self.apply(session_id, _mutate)

    async def apply(
        self,
        session_id: str,
        mutate: Callable[[Session], object],
        attach: Iterable[object] = (),
    ) -> Session:
        """
        Apply ``mutate`` to the stored session and write it back.

        Args:
            session_id: Session to change
            mutate: Callback that changes the domain model in place
            attach: Extra ORM records committed in the same transaction

        Returns:
            The updated session
        """
        try:
            record = await self._get_record(session_id)
            if record is None:
                raise NotFound(f"Session {session_id} not found")
            session = self._to_domain(record)
            mutate(session)
            session.updated_at = utcnow()

            for extra in attach:
                self.db.add(extra)

            result = await self.db.execute(
                update(SessionRecord)
                .where(
                    SessionRecord.id == session_id,
                    SessionRecord.version == record.version,
                )
                .values(
                    mode=session.mode.value,
                    messages=[m.model_dump(mode="json") for m in session.messages],
                    draft=session.draft.model_dump(mode="json") if session.draft else None,
                    draft_sequence=session.draft_sequence,
                    version=record.version + 1,
                    updated_at=session.updated_at,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise SessionBusy(f"Session {session_id} was modified concurrently")
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[SESSION STORE] Write failed - Session: {session_id}, Error: {e}")
            raise StoreUnavailable("Session store is unavailable") from e
        except Exception:
            await self.db.rollback()
            raise

        session.version = record.version + 1
        return session

    async def _get_record(self, session_id: str) -> Optional[SessionRecord]:
        result = await self.db.execute(
            select(SessionRecord)
            .where(SessionRecord.id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _to_domain(record: SessionRecord) -> Session:
        return Session(
            id=record.id,
            owner=record.owner,
            mode=AgentMode(record.mode),
            messages=[ChatMessage.model_validate(m) for m in (record.messages or [])],
            draft=OrderDraft.model_validate(record.draft) if record.draft else None,
            draft_sequence=record.draft_sequence,
            version=record.version,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
