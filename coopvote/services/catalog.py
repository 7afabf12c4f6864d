"""Read helpers for the election catalog.

Elections, positions, candidates, members and branches are owned by other
parts of the portal; the voting services only read them through these
functions so every component sees the same ordering and filtering rules.
"""
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ASCENDING

from coopvote.config import APPROVED_CANDIDATE_STATUS
from coopvote.database.connection import Database


def load_positions(db: Database, election_id: str) -> List[Dict[str, Any]]:
    return list(db.positions.find({"election_id": election_id}).sort([("order", ASCENDING), ("_id", ASCENDING)]))


def load_approved_candidates(db: Database, election_id: str) -> Dict[str, List[Dict[str, Any]]]:
    """Approved candidates of an election grouped by position, in listing order."""
    cursor = db.candidates.find(
        {"election_id": election_id, "status": APPROVED_CANDIDATE_STATUS}
    ).sort([("created_at", ASCENDING), ("_id", ASCENDING)])
    by_position = defaultdict(list)
    for candidate in cursor:
        by_position[candidate["position_id"]].append(candidate)
    return dict(by_position)


def load_members(db: Database, member_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    ids = [member_id for member_id in set(member_ids) if member_id]
    if not ids:
        return {}
    return {member["_id"]: member for member in db.members.find({"_id": {"$in": ids}})}


def member_display_name(member: Optional[Dict[str, Any]]) -> Optional[str]:
    if not member:
        return None
    name = " ".join(part for part in (member.get("first_name"), member.get("last_name")) if part)
    return name or member.get("email")


def candidate_identity(candidate: Dict[str, Any], member: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """True identity fields of a candidate, preferring values on the candidate record."""
    return {
        "id": candidate["_id"],
        "member_id": candidate.get("member_id"),
        "name": candidate.get("name") or member_display_name(member) or "Unknown",
        "email": candidate.get("email") or (member or {}).get("email") or "",
        "image_url": candidate.get("image_url"),
        "bio": candidate.get("bio"),
        "qualifications": candidate.get("qualifications"),
    }
