import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from coopvote.database.connection import Database
from coopvote.dependencies import get_db, get_eligibility_gate, get_projector, get_tally_engine
from coopvote.errors import NotFound
from coopvote.models.election_model import AnonymityInfo, AnonymityUpdate, VotingElection
from coopvote.models.results_model import DisplayReport
from coopvote.security import SessionUser, get_current_session, get_lenient_session, require_admin
from coopvote.services.anonymity import AnonymityProjector
from coopvote.services.eligibility import EligibilityGate
from coopvote.services.tally import TallyEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/elections", tags=["Election"])
voting_router = APIRouter(prefix="/voting", tags=["Voting"])


@router.get("/{election_id}/results", response_model=DisplayReport)
def get_results(
    election_id: str,
    session: Optional[SessionUser] = Depends(get_lenient_session),
    engine: TallyEngine = Depends(get_tally_engine),
    projector: AnonymityProjector = Depends(get_projector),
):
    # Results are public; a session only matters for the reveal capability
    report = engine.compute_results(election_id)
    is_admin = session is not None and session.is_admin
    return projector.project(report, report.election.is_anonymous, is_admin)


@router.patch("/{election_id}/anonymity", response_model=AnonymityInfo)
def set_anonymity(
    election_id: str,
    update: AnonymityUpdate,
    session: SessionUser = Depends(require_admin),
    db: Database = Depends(get_db),
):
    result = db.elections.update_one({"_id": election_id}, {"$set": {"is_anonymous": update.is_anonymous}})
    if result.matched_count == 0:
        raise NotFound("Election not found")
    logger.info(f"Election {election_id} anonymity set to {update.is_anonymous} by {session.member_id}")
    return AnonymityInfo(
        is_enabled=update.is_anonymous,
        can_reveal=True,
        is_revealed=not update.is_anonymous,
    )


@voting_router.get("/elections", response_model=List[VotingElection])
def list_voting_elections(
    session: SessionUser = Depends(get_current_session),
    gate: EligibilityGate = Depends(get_eligibility_gate),
):
    return gate.list_voting_elections(session.member_id)
