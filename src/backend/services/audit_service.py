"""
Audit trail service.

Entries are written in their own session so that an audit record survives a
rollback of the caller's transaction and a failed audit write can never
abort it. Writes are best-effort: failures are logged and dropped.
"""

from typing import Any, Optional

import structlog
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repositories.audit_log_repository import AuditLogRepository

logger = structlog.get_logger(__name__)


class ActorType:
    ADMIN = "admin"
    OFFICER = "officer"
    CANDIDATE = "candidate"
    VOTER = "voter"
    SYSTEM = "system"


class AuditTrail:
    """Append-only audit writer bound to a session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record(
        self,
        actor_type: str,
        action: str,
        actor_id: Optional[str] = None,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Append an audit entry.

        Call only after the caller's own transaction has been committed or
        rolled back.

        Returns:
            True if the entry was stored
        """
        try:
            async with self._session_factory() as session:
                await AuditLogRepository(session).add(
                    actor_type=actor_type,
                    action=action,
                    actor_id=actor_id,
                    entity=entity,
                    entity_id=entity_id,
                    payload=jsonable_encoder(payload) if payload is not None else None,
                )
                await session.commit()
            return True
        except Exception as e:
            logger.error(
                "audit_write_failed",
                action=action,
                actor_type=actor_type,
                entity=entity,
                error=str(e),
            )
            return False
