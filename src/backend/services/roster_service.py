"""
Voter roll import and account creation.

Rows arrive already parsed (CSV handling lives outside the backend); the
import normalizes registration numbers and upserts by them.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from models.audit_log import AuditAction
from models.user import User
from models.voter import normalize_reg_no
from repositories.user_repository import UserRepository
from repositories.voter_repository import VoterRepository
from schemas.admin import UserCreate, VoterImportResponse, VoterImportRow
from services.audit_service import ActorType, AuditTrail
from services.exceptions import InvalidStateError

logger = structlog.get_logger(__name__)


class RosterService:
    def __init__(self, db: AsyncSession, audit_trail: AuditTrail):
        self.db = db
        self.audit_trail = audit_trail
        self.voters = VoterRepository(db)

    async def import_voters(self, rows: list[VoterImportRow]) -> VoterImportResponse:
        """Upsert voters. Later rows win when a registration number repeats."""
        if not rows:
            raise InvalidStateError("No voters to import")

        by_reg_no = {row.reg_no: row.model_dump(mode="json") for row in rows}
        created, updated = await self.voters.upsert(list(by_reg_no.values()))
        await self.db.commit()

        logger.info("voters_imported", created=created, updated=updated)
        await self.audit_trail.record(
            actor_type=ActorType.ADMIN,
            action=AuditAction.IMPORT_VOTERS,
            entity="EligibleVoter",
            payload={"created": created, "updated": updated, "total": len(by_reg_no)},
        )

        return VoterImportResponse(created=created, updated=updated, total=len(by_reg_no))

    async def create_user(self, data: UserCreate) -> User:
        """Create a staff or candidate account."""
        users = UserRepository(self.db)
        if await users.get_by_email(data.email) is not None:
            raise InvalidStateError("A user with this email already exists")

        user = await users.create(
            email=data.email,
            name=data.name,
            role=data.role,
            reg_no=normalize_reg_no(data.reg_no) if data.reg_no else None,
            program=data.program,
        )
        await self.db.commit()

        logger.info("user_created", user_id=user.id, role=user.role)
        return user
