"""Eligibility Gate: may this member cast a ballot in this election right now."""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pymongo import ASCENDING
from pymongo.client_session import ClientSession

from coopvote.database.connection import Database
from coopvote.errors import AlreadyVoted, Forbidden, InvalidState, NotFound, VotingError
from coopvote.models.election_model import (
    BallotCandidate,
    BallotPosition,
    ElectionStatus,
    VotingElection,
)
from coopvote.models.member_model import MemberStatus
from coopvote.services import catalog
from coopvote.utils import as_naive_utc, utcnow

logger = logging.getLogger(__name__)


class DenialReason(str, Enum):
    MEMBER_NOT_FOUND = "MemberNotFound"
    MEMBER_NOT_ACTIVE = "MemberNotActive"
    ELECTION_NOT_FOUND = "ElectionNotFound"
    ELECTION_NOT_OPEN = "ElectionNotOpen"
    OUTSIDE_WINDOW = "OutsideWindow"
    ALREADY_VOTED = "AlreadyVoted"


_DENIAL_ERRORS: Dict[DenialReason, Callable[[], VotingError]] = {
    DenialReason.MEMBER_NOT_FOUND: lambda: NotFound("Member profile not found"),
    DenialReason.MEMBER_NOT_ACTIVE: lambda: Forbidden("Member account is not active"),
    DenialReason.ELECTION_NOT_FOUND: lambda: NotFound("Election not found"),
    DenialReason.ELECTION_NOT_OPEN: lambda: InvalidState("Election is not currently accepting votes"),
    DenialReason.OUTSIDE_WINDOW: lambda: InvalidState("Voting period has not started or has ended"),
    DenialReason.ALREADY_VOTED: lambda: AlreadyVoted(),
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenialReason] = None

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise _DENIAL_ERRORS[self.reason]()


def within_window(election: Dict[str, Any], now: datetime) -> bool:
    start = election.get("voting_start")
    end = election.get("voting_end")
    if start is None or end is None:
        return False
    return as_naive_utc(start) <= now <= as_naive_utc(end)


class EligibilityGate:
    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def has_voted(self, member_id: str, election_id: str, session: Optional[ClientSession] = None) -> bool:
        ballot = self.db.ballots.find_one(
            {"member_id": member_id, "election_id": election_id}, {"_id": 1}, session=session
        )
        return ballot is not None

    def authorize(self, member_id: str, election_id: str) -> Decision:
        """Run the four checks in order and stop at the first that fails."""
        member = self.db.members.find_one({"_id": member_id})
        if member is None:
            return Decision(False, DenialReason.MEMBER_NOT_FOUND)
        if member.get("status") != MemberStatus.ACTIVE.value:
            return Decision(False, DenialReason.MEMBER_NOT_ACTIVE)

        election = self.db.elections.find_one({"_id": election_id})
        if election is None:
            return Decision(False, DenialReason.ELECTION_NOT_FOUND)
        if election.get("status") != ElectionStatus.VOTING_ACTIVE.value:
            return Decision(False, DenialReason.ELECTION_NOT_OPEN)
        if not within_window(election, self.clock()):
            return Decision(False, DenialReason.OUTSIDE_WINDOW)

        if self.has_voted(member_id, election_id):
            return Decision(False, DenialReason.ALREADY_VOTED)
        return Decision(True)

    def open_elections(self) -> List[Dict[str, Any]]:
        now = self.clock()
        cursor = self.db.elections.find(
            {
                "status": ElectionStatus.VOTING_ACTIVE.value,
                "voting_start": {"$lte": now},
                "voting_end": {"$gte": now},
            }
        ).sort([("voting_end", ASCENDING), ("_id", ASCENDING)])
        return list(cursor)

    def voted_election_ids(self, member_id: str, election_ids: List[str]) -> set:
        if not election_ids:
            return set()
        cursor = self.db.ballots.find(
            {"member_id": member_id, "election_id": {"$in": election_ids}}, {"election_id": 1}
        )
        return {ballot["election_id"] for ballot in cursor}

    def require_active_member(self, member_id: str) -> Dict[str, Any]:
        member = self.db.members.find_one({"_id": member_id})
        if member is None:
            raise NotFound("Member profile not found")
        if member.get("status") != MemberStatus.ACTIVE.value:
            raise Forbidden("Member account is not active")
        return member

    def kiosk_login(self, member_number: str) -> Dict[str, Any]:
        """Admit a member to a kiosk voting session.

        The member must be ACTIVE, and is turned away when they have already
        voted in every election currently open for voting.
        """
        member = self.db.members.find_one({"member_number": member_number})
        if member is None:
            raise NotFound("Member not found")
        if member.get("status") != MemberStatus.ACTIVE.value:
            raise Forbidden("Member account is not active")

        open_ids = [election["_id"] for election in self.open_elections()]
        if open_ids and len(self.voted_election_ids(member["_id"], open_ids)) == len(open_ids):
            logger.warning(f"Kiosk login refused for member {member['_id']}: already voted in all open elections")
            raise AlreadyVoted()
        return member

    def list_voting_elections(self, member_id: str) -> List[VotingElection]:
        self.require_active_member(member_id)

        elections = self.open_elections()
        voted = self.voted_election_ids(member_id, [election["_id"] for election in elections])

        listed = []
        for election in elections:
            positions = catalog.load_positions(self.db, election["_id"])
            candidates = catalog.load_approved_candidates(self.db, election["_id"])
            members = catalog.load_members(
                self.db, [c.get("member_id") for cands in candidates.values() for c in cands]
            )
            ballot_positions = [
                BallotPosition(
                    id=position["_id"],
                    title=position.get("title", ""),
                    description=position.get("description"),
                    order=position.get("order", 0),
                    candidates=[
                        BallotCandidate(**catalog.candidate_identity(c, members.get(c.get("member_id"))))
                        for c in candidates.get(position["_id"], [])
                    ],
                )
                for position in positions
            ]
            has_voted = election["_id"] in voted
            listed.append(
                VotingElection(
                    id=election["_id"],
                    title=election.get("title", ""),
                    description=election.get("description"),
                    status=election["status"],
                    voting_start_date=election.get("voting_start"),
                    voting_end_date=election.get("voting_end"),
                    is_anonymous=election.get("is_anonymous", True),
                    positions=ballot_positions,
                    has_voted=has_voted,
                    can_vote=not has_voted,
                )
            )
        return listed
