"""
Ballot and vote casting endpoints.

The ballot token is the only credential accepted here; nothing in these
requests or responses identifies the voter.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Query

from api.deps import get_vote_service
from schemas.vote import BallotContentsResponse, CastVoteRequest, CastVoteResponse
from services.vote_service import VoteService

router = APIRouter()


@router.get("/ballot", response_model=BallotContentsResponse)
async def get_ballot(
    service: Annotated[VoteService, Depends(get_vote_service)],
    token: Annotated[Optional[str], Query()] = None,
    x_ballot_token: Annotated[Optional[str], Header(alias="X-Ballot-Token")] = None,
) -> BallotContentsResponse:
    """Positions open for voting right now and their approved candidates."""
    return await service.get_ballot_contents(token or x_ballot_token)


@router.post("", response_model=CastVoteResponse)
async def cast_votes(
    body: CastVoteRequest,
    service: Annotated[VoteService, Depends(get_vote_service)],
) -> CastVoteResponse:
    """
    Cast votes for one or more positions.

    All selections are validated first, then committed together with the
    ballot being consumed. A ballot can be used once.
    """
    return await service.cast_votes(body.token, body.votes)
