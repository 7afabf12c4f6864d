from typing import List, Optional

from coopvote.models.base import CamelModel
from coopvote.models.election_model import AnonymityInfo, ElectionHeader


class BranchVotes(CamelModel):
    branch_id: str
    branch_name: str
    branch_code: Optional[str] = None
    votes: int
    total_members: int
    participation_rate: float


class CandidateResult(CamelModel):
    id: str
    member_id: Optional[str] = None
    name: str
    email: Optional[str] = None
    image_url: Optional[str] = None
    bio: Optional[str] = None
    qualifications: Optional[str] = None
    vote_count: int
    percentage: float
    rank: int
    branch_breakdown: List[BranchVotes]


class PositionResult(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    total_votes: int
    total_eligible_members: int
    participation_rate: float
    candidates: List[CandidateResult]


class ResultsSummary(CamelModel):
    total_positions: int
    total_candidates: int
    total_votes: int
    total_voters: int
    total_eligible_members: int
    overall_participation_rate: float


class BranchSummary(CamelModel):
    id: str
    name: str
    code: Optional[str] = None
    total_members: int
    total_votes: int
    voters: int
    participation_rate: float


class TallyReport(CamelModel):
    election: ElectionHeader
    results: List[PositionResult]
    summary: ResultsSummary
    branch_breakdown: List[BranchSummary]


class DisplayReport(TallyReport):
    anonymity: AnonymityInfo
