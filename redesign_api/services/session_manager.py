"""
In-memory registry of redesign sessions
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from redesign_api.core.config import settings
from redesign_api.services.gateways import ProviderConversationGateway, ProviderGenerationGateway
from redesign_api.services.redesign_session import RedesignSession

logger = logging.getLogger(__name__)


def _default_session_factory() -> RedesignSession:
    return RedesignSession(ProviderGenerationGateway(), ProviderConversationGateway())


class RedesignSessionManager:
    """Keeps redesign sessions in memory with TTL expiry and a size cap"""

    def __init__(
        self,
        session_ttl_hours: int = 6,
        max_sessions: int = 200,
        session_factory: Callable[[], RedesignSession] = _default_session_factory,
    ):
        self.session_ttl = timedelta(hours=session_ttl_hours)
        self.max_sessions = max_sessions
        self.session_factory = session_factory
        self.sessions: Dict[str, RedesignSession] = {}

        logger.info(f"Redesign session manager initialized - Max sessions: {max_sessions}, TTL: {session_ttl_hours}h")

    async def create_session(self) -> RedesignSession:
        """Create and register a new, empty session"""
        await self.cleanup_expired_sessions()

        while len(self.sessions) >= self.max_sessions:
            oldest_id = min(self.sessions, key=lambda sid: self.sessions[sid].last_updated)
            logger.info(f"Session limit reached, evicting {oldest_id}")
            await self.remove_session(oldest_id)

        session = self.session_factory()
        self.sessions[session.session_id] = session
        logger.info(f"Created redesign session {session.session_id}")
        return session

    async def get_session(self, session_id: str) -> Optional[RedesignSession]:
        """Get a live session, or None if unknown or expired; expired sessions are closed and dropped"""
        session = self.sessions.get(session_id)
        if session is None:
            return None
        if datetime.now() - session.last_updated > self.session_ttl:
            logger.info(f"Session {session_id} expired")
            await self.remove_session(session_id)
            return None
        return session

    async def remove_session(self, session_id: str) -> bool:
        session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        logger.info(f"Removed redesign session {session_id}")
        return True

    async def cleanup_expired_sessions(self) -> int:
        """Drop sessions idle for longer than the TTL"""
        now = datetime.now()
        expired = [sid for sid, session in self.sessions.items() if now - session.last_updated > self.session_ttl]
        for session_id in expired:
            await self.remove_session(session_id)
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired redesign sessions")
        return len(expired)

    async def close_all(self) -> None:
        for session_id in list(self.sessions):
            await self.remove_session(session_id)


# Global manager instance
session_manager = RedesignSessionManager(
    session_ttl_hours=settings.session_ttl_hours,
    max_sessions=settings.max_sessions,
)
