"""Tally Engine.

Results are rebuilt from the stored ballots on every call. Nothing is cached,
so a client polling the results endpoint sees each committed ballot on its
next request, and never part of one since a ballot is a single document.
"""
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from coopvote.config import UNASSIGNED_BRANCH_ID, UNASSIGNED_BRANCH_NAME
from coopvote.database.connection import Database
from coopvote.errors import NotFound
from coopvote.models.election_model import ElectionHeader
from coopvote.models.member_model import MemberStatus
from coopvote.models.results_model import (
    BranchSummary,
    BranchVotes,
    CandidateResult,
    PositionResult,
    ResultsSummary,
    TallyReport,
)
from coopvote.services import catalog
from coopvote.utils import percent

logger = logging.getLogger(__name__)


class TallyEngine:
    def __init__(self, db: Database):
        self.db = db

    def compute_results(self, election_id: str) -> TallyReport:
        election = self.db.elections.find_one({"_id": election_id})
        if election is None:
            raise NotFound("Election not found")

        positions = catalog.load_positions(self.db, election_id)
        candidates_by_position = catalog.load_approved_candidates(self.db, election_id)
        candidate_members = catalog.load_members(
            self.db, [c.get("member_id") for cands in candidates_by_position.values() for c in cands]
        )

        branches = {branch["_id"]: branch for branch in self.db.branches.find({})}
        active_by_branch = self._active_members_by_branch()
        total_eligible = sum(active_by_branch.values())

        ballots = list(self.db.ballots.find({"election_id": election_id}, {"member_id": 1, "votes": 1}))
        voter_branch = self._voter_branches([ballot["member_id"] for ballot in ballots])

        tallied = {
            (position_id, candidate["_id"])
            for position_id, candidates in candidates_by_position.items()
            for candidate in candidates
        }
        votes: Counter = Counter()
        branch_votes: Counter = Counter()
        branch_totals: Counter = Counter()
        branch_voters: Dict[str, set] = {}
        for ballot in ballots:
            branch_id = voter_branch.get(ballot["member_id"], UNASSIGNED_BRANCH_ID)
            branch_voters.setdefault(branch_id, set()).add(ballot["member_id"])
            for line in ballot.get("votes", []):
                key = (line["position_id"], line.get("candidate_id"))
                # Abstentions and votes for candidates no longer approved are not tallied
                if key not in tallied:
                    continue
                votes[key] += 1
                branch_votes[key + (branch_id,)] += 1
                branch_totals[branch_id] += 1

        results = [
            self._position_result(
                position,
                candidates_by_position.get(position["_id"], []),
                candidate_members,
                votes,
                branch_votes,
                branches,
                active_by_branch,
                total_eligible,
            )
            for position in positions
        ]

        total_voters = len(ballots)
        summary = ResultsSummary(
            total_positions=len(positions),
            total_candidates=sum(len(candidates_by_position.get(p["_id"], [])) for p in positions),
            total_votes=sum(votes.values()),
            total_voters=total_voters,
            total_eligible_members=total_eligible,
            overall_participation_rate=percent(total_voters, total_eligible),
        )

        logger.debug(f"Tallied election {election_id}: {summary.total_votes} votes from {total_voters} voters")
        return TallyReport(
            election=ElectionHeader(
                id=election["_id"],
                title=election.get("title", ""),
                description=election.get("description"),
                status=election["status"],
                voting_start_date=election.get("voting_start"),
                voting_end_date=election.get("voting_end"),
                is_anonymous=election.get("is_anonymous", True),
            ),
            results=results,
            summary=summary,
            branch_breakdown=self._branch_rollup(branches, active_by_branch, branch_totals, branch_voters),
        )

    def _active_members_by_branch(self) -> Counter:
        counts: Counter = Counter()
        for member in self.db.members.find({"status": MemberStatus.ACTIVE.value}, {"branch_id": 1}):
            counts[member.get("branch_id") or UNASSIGNED_BRANCH_ID] += 1
        return counts

    def _voter_branches(self, member_ids: List[str]) -> Dict[str, str]:
        # Current branch of each voter, whatever their status is today
        if not member_ids:
            return {}
        cursor = self.db.members.find({"_id": {"$in": member_ids}}, {"branch_id": 1})
        return {member["_id"]: member.get("branch_id") or UNASSIGNED_BRANCH_ID for member in cursor}

    def _position_result(
        self,
        position: Dict[str, Any],
        candidates: List[Dict[str, Any]],
        candidate_members: Dict[str, Dict[str, Any]],
        votes: Counter,
        branch_votes: Counter,
        branches: Dict[str, Dict[str, Any]],
        active_by_branch: Counter,
        total_eligible: int,
    ) -> PositionResult:
        position_id = position["_id"]
        total_votes = sum(votes[(position_id, candidate["_id"])] for candidate in candidates)

        # sorted() is stable, so tied candidates keep their listing order
        ranked = sorted(candidates, key=lambda candidate: -votes[(position_id, candidate["_id"])])
        candidate_results = []
        for rank, candidate in enumerate(ranked, start=1):
            vote_count = votes[(position_id, candidate["_id"])]
            breakdown = [
                BranchVotes(
                    branch_id=branch_id,
                    branch_name=_branch_name(branches, branch_id),
                    branch_code=(branches.get(branch_id) or {}).get("code"),
                    votes=count,
                    total_members=active_by_branch.get(branch_id, 0),
                    participation_rate=percent(count, active_by_branch.get(branch_id, 0)),
                )
                for (pid, cid, branch_id), count in branch_votes.items()
                if pid == position_id and cid == candidate["_id"]
            ]
            breakdown.sort(key=lambda item: (-item.votes, item.branch_name, item.branch_id))
            candidate_results.append(
                CandidateResult(
                    **catalog.candidate_identity(candidate, candidate_members.get(candidate.get("member_id"))),
                    vote_count=vote_count,
                    percentage=percent(vote_count, total_votes),
                    rank=rank,
                    branch_breakdown=breakdown,
                )
            )

        return PositionResult(
            id=position_id,
            title=position.get("title", ""),
            description=position.get("description"),
            total_votes=total_votes,
            total_eligible_members=total_eligible,
            participation_rate=percent(total_votes, total_eligible),
            candidates=candidate_results,
        )

    def _branch_rollup(
        self,
        branches: Dict[str, Dict[str, Any]],
        active_by_branch: Counter,
        branch_totals: Counter,
        branch_voters: Dict[str, set],
    ) -> List[BranchSummary]:
        branch_ids = set(branches) | set(active_by_branch) | set(branch_voters)
        rollup = []
        for branch_id in branch_ids:
            total_members = active_by_branch.get(branch_id, 0)
            voters = len(branch_voters.get(branch_id, ()))
            rollup.append(
                BranchSummary(
                    id=branch_id,
                    name=_branch_name(branches, branch_id),
                    code=(branches.get(branch_id) or {}).get("code"),
                    total_members=total_members,
                    total_votes=branch_totals.get(branch_id, 0),
                    voters=voters,
                    participation_rate=percent(voters, total_members),
                )
            )
        rollup.sort(key=lambda item: (-item.total_votes, item.name, item.id))
        return rollup


def _branch_name(branches: Dict[str, Dict[str, Any]], branch_id: str) -> str:
    if branch_id == UNASSIGNED_BRANCH_ID:
        return UNASSIGNED_BRANCH_NAME
    branch: Optional[Dict[str, Any]] = branches.get(branch_id)
    return branch.get("name", branch_id) if branch else branch_id
