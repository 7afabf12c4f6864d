import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from pymongo.client_session import ClientSession

from coopvote.database.connection import Database
from coopvote.utils import new_id, utcnow

logger = logging.getLogger(__name__)

CAST_VOTES_ACTION = "CAST_VOTES"


class AuditLog:
    """Append-only audit sink backed by the ``logs`` collection."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        member_id: Optional[str] = None,
        user_id: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        session: Optional[ClientSession] = None,
    ) -> str:
        entry = {
            "_id": new_id(),
            "user_id": user_id,
            "member_id": member_id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "changes": changes,
            "ip_address": ip_address,
            "user_agent": user_agent,
            "created_at": self.clock(),
        }
        self.db.logs.insert_one(entry, session=session)
        logger.debug(f"Audit {action} on {entity_type} {entity_id}")
        return entry["_id"]

    def record_ballot(
        self,
        ballot: Dict[str, Any],
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        session: Optional[ClientSession] = None,
    ) -> str:
        votes = ballot["votes"]
        return self.record(
            action=CAST_VOTES_ACTION,
            entity_type="Vote",
            entity_id=votes[0]["id"],
            member_id=ballot["member_id"],
            user_id=user_id,
            changes={
                "election_id": ballot["election_id"],
                "votes_count": len(votes),
                "positions": [
                    {"position_id": vote["position_id"], "candidate_id": vote["candidate_id"]} for vote in votes
                ],
            },
            ip_address=ip_address,
            user_agent=user_agent,
            session=session,
        )
