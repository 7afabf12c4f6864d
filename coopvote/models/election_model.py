from datetime import datetime
from enum import Enum
from typing import List, Optional

from coopvote.models.base import CamelModel


class ElectionStatus(str, Enum):
    DRAFT = "DRAFT"
    ANNOUNCED = "ANNOUNCED"
    VOTING_ACTIVE = "VOTING_ACTIVE"
    VOTING_CLOSED = "VOTING_CLOSED"
    RESULTS_CERTIFIED = "RESULTS_CERTIFIED"
    CANCELLED = "CANCELLED"


class ElectionHeader(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    status: ElectionStatus
    voting_start_date: Optional[datetime] = None
    voting_end_date: Optional[datetime] = None
    is_anonymous: bool = True


class AnonymityUpdate(CamelModel):
    is_anonymous: bool


class AnonymityInfo(CamelModel):
    is_enabled: bool
    can_reveal: bool
    is_revealed: bool


# --- Elections open for voting ---

class BallotCandidate(CamelModel):
    id: str
    member_id: Optional[str] = None
    name: str
    email: Optional[str] = None
    image_url: Optional[str] = None
    bio: Optional[str] = None
    qualifications: Optional[str] = None


class BallotPosition(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    order: int = 0
    candidates: List[BallotCandidate]


class VotingElection(ElectionHeader):
    positions: List[BallotPosition]
    has_voted: bool
    can_vote: bool
