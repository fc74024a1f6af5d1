"""
Shared dependencies for API endpoints.

Includes:
- Process-wide resources (clock, audit trail, dispatcher) from app.state
- Per-request services bound to the request's database session
- Admin API key check
"""

from typing import Annotated, Optional

import structlog
from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock
from core.config import settings
from core.security import constant_time_equals
from db.session import get_db
from services.audit_service import AuditTrail
from services.notification_service import NotificationDispatcher
from services.position_service import PositionService
from services.report_service import ReportService
from services.roster_service import RosterService
from services.verification_service import VerificationService
from services.vote_service import VoteService

logger = structlog.get_logger(__name__)


# =============================================================================
# Process-wide resources
# =============================================================================


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_audit_trail(request: Request) -> AuditTrail:
    return request.app.state.audit_trail


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


DbSession = Annotated[AsyncSession, Depends(get_db)]
ClockDep = Annotated[Clock, Depends(get_clock)]
AuditTrailDep = Annotated[AuditTrail, Depends(get_audit_trail)]


# =============================================================================
# Services
# =============================================================================


def get_verification_service(
    db: DbSession,
    clock: ClockDep,
    audit_trail: AuditTrailDep,
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
) -> VerificationService:
    return VerificationService(db, clock, audit_trail, dispatcher)


def get_vote_service(db: DbSession, clock: ClockDep, audit_trail: AuditTrailDep) -> VoteService:
    return VoteService(db, clock, audit_trail)


def get_position_service(db: DbSession, clock: ClockDep, audit_trail: AuditTrailDep) -> PositionService:
    return PositionService(db, clock, audit_trail)


def get_roster_service(db: DbSession, audit_trail: AuditTrailDep) -> RosterService:
    return RosterService(db, audit_trail)


def get_report_service(db: DbSession) -> ReportService:
    return ReportService(db)


# =============================================================================
# Admin access
# =============================================================================


async def require_admin_key(
    request: Request,
    x_admin_key: Annotated[Optional[str], Header(alias="X-Admin-Key")] = None,
) -> None:
    """
    Check the X-Admin-Key header against ADMIN_API_KEY in constant time.

    Raises:
        HTTPException: 503 when no key is configured, 401 when the header is
            missing or wrong.
    """
    if not settings.ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Administration is not configured",
        )

    if not x_admin_key or not constant_time_equals(x_admin_key, settings.ADMIN_API_KEY):
        logger.warning(
            "admin_key_rejected",
            path=request.url.path,
            client=request.client.host if request.client else None,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin key",
        )
