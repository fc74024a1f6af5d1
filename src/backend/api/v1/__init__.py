"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from api.v1.admin import router as admin_router
from api.v1.verification import router as verification_router
from api.v1.votes import router as votes_router

router = APIRouter()

router.include_router(verification_router, prefix="/verify", tags=["Voter Verification"])
router.include_router(votes_router, prefix="/vote", tags=["Voting"])
router.include_router(admin_router, prefix="/admin", tags=["Administration"])
