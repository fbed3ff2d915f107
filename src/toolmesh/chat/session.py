"""Session store for chat transcripts."""

import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import UTC, datetime

from toolmesh.errors import create_error

from .types import Message, Session


class SessionStore(ABC):
    """Abstract base class for transcript storage."""

    @abstractmethod
    async def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""

    @abstractmethod
    async def create_session(self, system_prompt: str | None = None) -> Session:
        """Create a session, seeded with a system message if a prompt is given."""

    @abstractmethod
    async def add_message(self, session_id: str, message: Message) -> None:
        """Append a message to a session's transcript."""

    @abstractmethod
    async def get_history(self, session_id: str) -> list[Message]:
        """Ordered transcript of a session."""

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session. Stores that cannot delete return False."""
        return False


class InMemorySessionStore(SessionStore):
    """In-memory session store with LRU eviction."""

    def __init__(self, max_sessions: int = 1000):
        """Initialize store.

        Args:
            max_sessions: Maximum number of sessions to keep
        """
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, Session] = OrderedDict()

    async def get_session(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        return session

    async def create_session(self, system_prompt: str | None = None) -> Session:
        session = Session(id=str(uuid.uuid4()))
        if system_prompt:
            session.messages.append(Message.system(system_prompt))
        self._sessions[session.id] = session

        # Evict oldest if over limit
        while len(self._sessions) > self.max_sessions:
            self._sessions.popitem(last=False)
        return session

    async def add_message(self, session_id: str, message: Message) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            raise create_error("SESSION_NOT_FOUND", session_id=session_id)
        session.messages.append(message)
        session.updated_at = datetime.now(UTC)
        self._sessions.move_to_end(session_id)

    async def get_history(self, session_id: str) -> list[Message]:
        session = self._sessions.get(session_id)
        if session is None:
            raise create_error("SESSION_NOT_FOUND", session_id=session_id)
        return list(session.messages)

    async def delete_session(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None
