"""
Voter verification endpoints.

A voter proves control of the contact details on the voter roll with a
one-time code and receives a single-use ballot token in exchange.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from api.deps import get_verification_service
from schemas.verification import (
    ConfirmOtpRequest,
    ConfirmOtpResponse,
    RequestOtpRequest,
    RequestOtpResponse,
)
from services.verification_service import VerificationService

router = APIRouter()


@router.post("/request-otp", response_model=RequestOtpResponse)
async def request_otp(
    body: RequestOtpRequest,
    service: Annotated[VerificationService, Depends(get_verification_service)],
) -> RequestOtpResponse:
    """
    Send a one-time code to the voter's email and/or phone.

    The code is never returned. A new code can be requested once the resend
    cooldown has passed (429 with Retry-After otherwise).
    """
    return await service.request_otp(body.reg_no)


@router.post("/confirm", response_model=ConfirmOtpResponse)
async def confirm_otp(
    body: ConfirmOtpRequest,
    service: Annotated[VerificationService, Depends(get_verification_service)],
) -> ConfirmOtpResponse:
    """Exchange a valid one-time code for a ballot token."""
    return await service.confirm_otp(body.reg_no, body.otp.strip())
