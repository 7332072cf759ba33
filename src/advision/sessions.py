from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from advision.wizard import AdWizard


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Session:
    session_id: str
    created_at: str
    wizard: AdWizard


class SessionStore:
    """
    In-memory wizard sessions keyed by id. Nothing is written to disk; a process
    restart drops every session.
    """

    def __init__(self, wizard_factory: Callable[[], AdWizard]) -> None:
        self.wizard_factory = wizard_factory
        self._sessions: dict[str, Session] = {}

    def create_session(self) -> Session:
        session_id = uuid.uuid4().hex[:12]
        session = Session(session_id=session_id, created_at=_now_iso(), wizard=self.wizard_factory())
        self._sessions[session_id] = session
        return session

    def read_session(self, session_id: str) -> Session:
        # KeyError for unknown ids; the API maps it to 404.
        return self._sessions[session_id]

    def list_sessions(self) -> list[Session]:
        return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def delete_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
