"""
Audit log repository for database operations.
"""

from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.audit_log import AuditLog


class AuditLogRepository:
    """Repository for the append-only audit trail."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(
        self,
        actor_type: str,
        action: str,
        actor_id: Optional[str] = None,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> AuditLog:
        """Append an entry."""
        entry = AuditLog(
            actor_type=actor_type,
            actor_id=actor_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            payload=payload,
        )

        self.db.add(entry)
        await self.db.flush()

        return entry

    async def list_logs(
        self,
        page: int = 1,
        per_page: int = 50,
        action: Optional[str] = None,
        actor_type: Optional[str] = None,
    ) -> tuple[list[AuditLog], int]:
        """List entries most recent first, with pagination."""
        query = select(AuditLog)
        count_query = select(func.count(AuditLog.id))

        if action:
            action_filter = AuditLog.action.ilike(f"%{action}%")
            query = query.where(action_filter)
            count_query = count_query.where(action_filter)

        if actor_type:
            query = query.where(AuditLog.actor_type == actor_type)
            count_query = count_query.where(AuditLog.actor_type == actor_type)

        # Get total count
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        # Get paginated results
        query = query.order_by(AuditLog.created_at.desc())
        query = query.offset((page - 1) * per_page).limit(per_page)

        result = await self.db.execute(query)
        logs = list(result.scalars().all())

        return logs, total
