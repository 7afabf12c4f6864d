"""Ballot Casting Service.

A ballot is stored as a single document holding one vote line per position,
so it is written all at once or not at all. The unique index on
(member_id, election_id) is what guarantees one ballot per member per
election; the eligibility checks in front of it only turn away the common
duplicate early. Both paths raise the same ``AlreadyVoted``.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from pymongo.errors import DuplicateKeyError, PyMongoError

from coopvote.config import APPROVED_CANDIDATE_STATUS
from coopvote.database.connection import Database
from coopvote.errors import AlreadyVoted, Internal, ValidationError
from coopvote.models.vote_model import BallotReceipt, VoteReceiptLine, VoteSelection
from coopvote.services import catalog
from coopvote.services.audit import AuditLog
from coopvote.services.eligibility import EligibilityGate
from coopvote.utils import generate_vote_token, new_id, utcnow

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 3
TRANSIENT_TRANSACTION_ERROR = "TransientTransactionError"


class BallotService:
    def __init__(
        self,
        db: Database,
        gate: Optional[EligibilityGate] = None,
        audit: Optional[AuditLog] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.clock = clock
        self.gate = gate or EligibilityGate(db, clock=clock)
        self.audit = audit or AuditLog(db, clock=clock)

    def cast_ballot(
        self,
        member_id: str,
        election_id: str,
        selections: Sequence[VoteSelection],
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> BallotReceipt:
        decision = self.gate.authorize(member_id, election_id)
        if not decision.allowed:
            logger.warning(f"Ballot refused for member {member_id} in election {election_id}: {decision.reason.value}")
        decision.raise_for_denial()

        self.validate_selections(election_id, selections)
        ballot = self._build_ballot(member_id, election_id, selections)

        # A transaction aborted by a write conflict is rerun from the top, so
        # the in-scope has_voted check sees whichever request committed first.
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            try:
                self._write_ballot(ballot, user_id=user_id, ip_address=ip_address, user_agent=user_agent)
                break
            except DuplicateKeyError:
                logger.warning(f"Duplicate ballot rejected by unique index for member {member_id} in election {election_id}")
                raise AlreadyVoted()
            except PyMongoError as exc:
                if exc.has_error_label(TRANSIENT_TRANSACTION_ERROR) and attempt < MAX_WRITE_ATTEMPTS:
                    logger.warning(
                        f"Transient transaction error casting ballot for member {member_id} "
                        f"in election {election_id}, retrying (attempt {attempt}/{MAX_WRITE_ATTEMPTS})"
                    )
                    continue
                logger.exception(f"Storage failure casting ballot for member {member_id} in election {election_id}")
                self._raise_for_write_failure(member_id, election_id, ballot["_id"])

        logger.info(f"Ballot {ballot['_id']} cast in election {election_id} ({len(ballot['votes'])} votes)")
        return BallotReceipt(
            success=True,
            votes_count=len(ballot["votes"]),
            votes=[VoteReceiptLine(id=vote["id"], vote_token=vote["vote_token"]) for vote in ballot["votes"]],
        )

    def validate_selections(self, election_id: str, selections: Sequence[VoteSelection]) -> None:
        """Require exactly one selection per position, each naming an approved candidate of it or nobody."""
        if not selections:
            raise ValidationError("Missing required fields: electionId and votes array")

        position_ids = [position["_id"] for position in catalog.load_positions(self.db, election_id)]
        known_positions = set(position_ids)
        approved = {
            candidate["_id"]: candidate
            for candidate in self.db.candidates.find(
                {"election_id": election_id, "status": APPROVED_CANDIDATE_STATUS}
            )
        }

        seen = set()
        for selection in selections:
            if selection.position_id not in known_positions:
                raise ValidationError(f"Position {selection.position_id} does not belong to this election")
            if selection.position_id in seen:
                raise ValidationError(f"More than one selection for position {selection.position_id}")
            seen.add(selection.position_id)

            if selection.candidate_id is None:
                continue
            candidate = approved.get(selection.candidate_id)
            if candidate is None or candidate.get("position_id") != selection.position_id:
                raise ValidationError(
                    f"Candidate {selection.candidate_id} is not an approved candidate for position {selection.position_id}"
                )

        missing = [position_id for position_id in position_ids if position_id not in seen]
        if missing:
            raise ValidationError(f"Ballot is incomplete: no selection for position(s) {', '.join(missing)}")

    def _build_ballot(self, member_id: str, election_id: str, selections: Sequence[VoteSelection]) -> Dict[str, Any]:
        now = self.clock()
        votes: List[Dict[str, Any]] = [
            {
                "id": new_id(),
                "position_id": selection.position_id,
                "candidate_id": selection.candidate_id,
                "vote_token": generate_vote_token(),
                "created_at": now,
            }
            for selection in selections
        ]
        return {
            "_id": new_id(),
            "election_id": election_id,
            "member_id": member_id,
            "cast_at": now,
            "votes": votes,
        }

    def _write_ballot(
        self,
        ballot: Dict[str, Any],
        user_id: Optional[str],
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> None:
        member_id, election_id = ballot["member_id"], ballot["election_id"]
        with self.db.transaction() as session:
            # Second look inside the write scope; the unique index still
            # has the final word if another request slips in after this.
            if self.gate.has_voted(member_id, election_id, session=session):
                raise AlreadyVoted()
            self.db.ballots.insert_one(ballot, session=session)
            try:
                self.audit.record_ballot(
                    ballot, user_id=user_id, ip_address=ip_address, user_agent=user_agent, session=session
                )
            except PyMongoError:
                logger.exception(f"Audit write failed for ballot {ballot['_id']}, rolling back")
                if session is None:
                    self.db.ballots.delete_one({"_id": ballot["_id"]})
                raise Internal()

    def _raise_for_write_failure(self, member_id: str, election_id: str, ballot_id: str) -> None:
        # Reached on a non-transient failure or once the retries are spent;
        # the stored ballot tells whether another request won.
        try:
            existing = self.db.ballots.find_one({"member_id": member_id, "election_id": election_id}, {"_id": 1})
        except PyMongoError:
            logger.exception("Could not inspect ballots after a failed write")
            raise Internal()
        if existing is not None and existing["_id"] != ballot_id:
            raise AlreadyVoted()
        raise Internal()
