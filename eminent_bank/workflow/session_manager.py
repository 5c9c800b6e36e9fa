"""
Transfer Session Management
Keeps live transfer workflows in memory, keyed by a generated session id.

Notes:
- Sessions are process-local. Each one belongs to the identity user that
  opened it; lookups by anyone else fail as if the session did not exist.
- A session idle for longer than the timeout is dropped on next access.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional
from uuid import UUID

from eminent_bank.logging_config import get_logger
from eminent_bank.workflow.transfer_workflow import TransferWorkflow

logger = get_logger("eminent_bank.workflow.sessions")


@dataclass
class TransferSession:
    session_id: str
    owner_id: UUID
    workflow: TransferWorkflow
    created_at: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)


class TransferSessionManager:
    def __init__(self, session_timeout_minutes: int = 15):
        self.sessions: Dict[str, TransferSession] = {}
        self.session_timeout = timedelta(minutes=session_timeout_minutes)

    def create_session(self, workflow: TransferWorkflow) -> TransferSession:
        session_id = str(uuid.uuid4())
        session = TransferSession(session_id=session_id, owner_id=workflow.user.user_id, workflow=workflow)
        self.sessions[session_id] = session
        logger.info("Transfer session %s created for %s", session_id, workflow.user.email)
        return session

    def get_session(self, session_id: str, owner_id: UUID) -> Optional[TransferSession]:
        """
        Get a session owned by ``owner_id``, or None if missing/expired/foreign.
        """
        session = self.sessions.get(session_id)
        if session is None:
            return None
        now = datetime.now()
        if now - session.last_activity > self.session_timeout:
            del self.sessions[session_id]
            logger.info("Transfer session %s expired", session_id)
            return None
        if session.owner_id != owner_id:
            logger.warning("Transfer session %s requested by non-owner %s", session_id, owner_id)
            return None
        session.last_activity = now
        return session

    def end_session(self, session_id: str) -> None:
        self.sessions.pop(session_id, None)

    def purge_expired(self) -> int:
        now = datetime.now()
        expired = [sid for sid, s in self.sessions.items() if now - s.last_activity > self.session_timeout]
        for sid in expired:
            del self.sessions[sid]
        return len(expired)
