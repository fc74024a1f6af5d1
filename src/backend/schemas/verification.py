"""
Voter verification (OTP) schemas.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from schemas.base import CamelModel


class RequestOtpRequest(BaseModel):
    """Ask for a one-time code for a registration number."""

    reg_no: str = Field(..., min_length=1, max_length=64)

    @field_validator("reg_no")
    @classmethod
    def strip_reg_no(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reg_no must not be blank")
        return v


class ConfirmOtpRequest(RequestOtpRequest):
    """Submit the code that was delivered out-of-band."""

    otp: str = Field(..., min_length=4, max_length=10, pattern=r"^\s*\d+\s*$")


class RequestOtpResponse(CamelModel):
    message: str
    expires_in: int
    sent_via: list[str]


class ConfirmOtpResponse(CamelModel):
    """
    Ballot token handed to the voter after a successful confirmation.

    `expires_at` carries the ballot's issue time.
    """

    message: str
    ballot_token: str
    expires_at: datetime
