from fastapi import APIRouter, Depends, Request

from coopvote.dependencies import get_ballot_service, get_eligibility_gate
from coopvote.models.vote_model import BallotIn, BallotReceipt, EligibilityOut
from coopvote.security import SessionUser, get_current_session
from coopvote.services.ballots import BallotService
from coopvote.services.eligibility import DenialReason, EligibilityGate

vote_router = APIRouter(prefix="/votes", tags=["Vote"])


# ------------------------------
# CAST A COMPLETE BALLOT
# ------------------------------
@vote_router.post("/batch", response_model=BallotReceipt, status_code=201)
def cast_ballot(
    ballot: BallotIn,
    request: Request,
    session: SessionUser = Depends(get_current_session),
    service: BallotService = Depends(get_ballot_service),
):
    """
    Casts one vote per position of the election as a single ballot.
    A member gets exactly one ballot per election.
    """
    return service.cast_ballot(
        member_id=session.member_id,
        election_id=ballot.election_id,
        selections=ballot.votes,
        user_id=session.member_id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


# ------------------------------
# CHECK IF MEMBER CAN STILL VOTE
# ------------------------------
@vote_router.get("/check/{election_id}", response_model=EligibilityOut)
def check_vote(
    election_id: str,
    session: SessionUser = Depends(get_current_session),
    gate: EligibilityGate = Depends(get_eligibility_gate),
):
    decision = gate.authorize(session.member_id, election_id)
    if decision.allowed:
        return EligibilityOut(status="eligible")
    if decision.reason is DenialReason.ALREADY_VOTED:
        return EligibilityOut(status="already_voted", reason=decision.reason.value)
    return EligibilityOut(status="ineligible", reason=decision.reason.value)
