from typing import List, Optional

from pydantic import Field

from coopvote.models.base import CamelModel


class VoteSelection(CamelModel):
    position_id: str
    candidate_id: Optional[str] = None  # None records an abstention


class BallotIn(CamelModel):
    election_id: str = Field(..., min_length=1)
    votes: List[VoteSelection] = Field(..., min_length=1)


class VoteReceiptLine(CamelModel):
    id: str
    vote_token: str


class BallotReceipt(CamelModel):
    success: bool = True
    votes_count: int
    votes: List[VoteReceiptLine]


class EligibilityOut(CamelModel):
    status: str
    reason: Optional[str] = None
