"""
Election administration endpoints.

All endpoints require the X-Admin-Key header. They cover:
- Voter roll import
- Staff and candidate accounts
- Positions and their time windows
- Nomination submission and review
- Turnout and results reports
- The audit log
"""

import math
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from api.deps import (
    DbSession,
    get_position_service,
    get_report_service,
    get_roster_service,
    require_admin_key,
)
from repositories.audit_log_repository import AuditLogRepository
from schemas.admin import (
    AuditLogEntry,
    AuditLogPage,
    CandidateResponse,
    NominationCreate,
    NominationReview,
    Pagination,
    PositionCreate,
    PositionExtendRequest,
    PositionResponse,
    ResultsReport,
    TurnoutReport,
    UserCreate,
    UserResponse,
    VoterImportRequest,
    VoterImportResponse,
)
from services.position_service import PositionService
from services.report_service import ReportService
from services.roster_service import RosterService

router = APIRouter(dependencies=[Depends(require_admin_key)])

PositionServiceDep = Annotated[PositionService, Depends(get_position_service)]
RosterServiceDep = Annotated[RosterService, Depends(get_roster_service)]
ReportServiceDep = Annotated[ReportService, Depends(get_report_service)]


@router.post("/voters", response_model=VoterImportResponse)
async def import_voters(body: VoterImportRequest, service: RosterServiceDep) -> VoterImportResponse:
    """Insert or update voters by registration number."""
    return await service.import_voters(body.voters)


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, service: RosterServiceDep) -> UserResponse:
    user = await service.create_user(body)
    return UserResponse.model_validate(user)


@router.post("/positions", response_model=PositionResponse, status_code=status.HTTP_201_CREATED)
async def create_position(body: PositionCreate, service: PositionServiceDep) -> PositionResponse:
    position = await service.create_position(body)
    return PositionResponse.model_validate(position)


@router.post("/positions/{position_id}/extend", response_model=PositionResponse)
async def extend_position(
    position_id: str,
    body: PositionExtendRequest,
    service: PositionServiceDep,
) -> PositionResponse:
    """Extend the nomination and/or voting close of a position by a number of hours."""
    position = await service.extend_position(position_id, body)
    return PositionResponse.model_validate(position)


@router.delete("/positions/{position_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_position(position_id: str, service: PositionServiceDep) -> None:
    """Delete a position. Refused once candidates or votes reference it."""
    await service.delete_position(position_id)


@router.post("/candidates", response_model=CandidateResponse, status_code=status.HTTP_201_CREATED)
async def submit_nomination(body: NominationCreate, service: PositionServiceDep) -> CandidateResponse:
    candidate = await service.submit_nomination(body)
    return CandidateResponse.model_validate(candidate)


@router.post("/candidates/{candidate_id}/review", response_model=CandidateResponse)
async def review_nomination(
    candidate_id: str,
    body: NominationReview,
    service: PositionServiceDep,
) -> CandidateResponse:
    candidate = await service.review_nomination(candidate_id, body)
    return CandidateResponse.model_validate(candidate)


@router.get("/reports/turnout", response_model=TurnoutReport)
async def turnout_report(service: ReportServiceDep) -> TurnoutReport:
    return await service.turnout()


@router.get("/reports/results", response_model=ResultsReport)
async def results_report(service: ReportServiceDep) -> ResultsReport:
    """Vote counts per approved candidate, counted from vote rows only."""
    return await service.results()


@router.get("/audit-logs", response_model=AuditLogPage)
async def list_audit_logs(
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    action: Optional[str] = None,
    actor_type: Annotated[Optional[str], Query(alias="actorType")] = None,
) -> AuditLogPage:
    """Audit entries, most recent first."""
    logs, total = await AuditLogRepository(db).list_logs(
        page=page,
        per_page=limit,
        action=action,
        actor_type=actor_type,
    )
    return AuditLogPage(
        logs=[AuditLogEntry.model_validate(entry) for entry in logs],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )
