"""Shared fixtures: an in-memory MongoDB and a small cooperative election."""

from datetime import datetime, timedelta

import mongomock
import pytest

from coopvote.database.connection import Database
from coopvote.models.vote_model import VoteSelection
from coopvote.services.ballots import BallotService
from coopvote.services.eligibility import EligibilityGate
from coopvote.services.tally import TallyEngine

FIXED_NOW = datetime(2026, 5, 1, 12, 0, 0)


def make_member(db, member_id, first_name, last_name, branch_id=None, status="ACTIVE", role="MEMBER"):
    db.members.insert_one({
        "_id": member_id,
        "member_number": f"N-{member_id}",
        "first_name": first_name,
        "last_name": last_name,
        "email": f"{first_name.lower()}@coop.example",
        "status": status,
        "branch_id": branch_id,
        "role": role,
    })


def make_election(db, election_id, status="VOTING_ACTIVE", is_anonymous=False,
                  start=FIXED_NOW - timedelta(hours=4), end=FIXED_NOW + timedelta(hours=8)):
    db.elections.insert_one({
        "_id": election_id,
        "title": f"Election {election_id}",
        "description": "Annual board election",
        "status": status,
        "voting_start": start,
        "voting_end": end,
        "is_anonymous": is_anonymous,
    })


def make_position(db, position_id, election_id, title, order):
    db.positions.insert_one({
        "_id": position_id,
        "election_id": election_id,
        "title": title,
        "description": None,
        "order": order,
    })


def make_candidate(db, candidate_id, election_id, position_id, member_id, listed, status="approved"):
    """``listed`` is the minute offset of the nomination, i.e. the listing order."""
    db.candidates.insert_one({
        "_id": candidate_id,
        "election_id": election_id,
        "position_id": position_id,
        "member_id": member_id,
        "image_url": f"https://img.example/{candidate_id}.png",
        "bio": f"Bio of {candidate_id}",
        "qualifications": "Ten years of service",
        "status": status,
        "created_at": datetime(2026, 4, 1) + timedelta(minutes=listed),
    })


def ballot(*pairs):
    """``ballot(("p1", "c1"), ("p2", None))`` -> list of selections."""
    return [VoteSelection(position_id=p, candidate_id=c) for p, c in pairs]


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def database():
    client = mongomock.MongoClient()
    db = Database(client, "coopvote_test", use_transactions=False)
    db.ensure_indexes()
    return db


@pytest.fixture
def coop(database):
    """Two branches, six members, election e1 with two positions.

    Active members: North {alice, carol}, South {bob, admin}, no branch {dan}.
    Eve is suspended.

        P1 Chair      C1 (carol), C2 (dan), C5 (pending, not selectable)
        P2 Treasurer  C3 (alice), C4 (bob)
    """
    database.branches.insert_many([
        {"_id": "b-north", "name": "North", "code": "NTH"},
        {"_id": "b-south", "name": "South", "code": "STH"},
    ])
    make_member(database, "m-alice", "Alice", "Ng", branch_id="b-north")
    make_member(database, "m-bob", "Bob", "Osei", branch_id="b-south")
    make_member(database, "m-carol", "Carol", "Diaz", branch_id="b-north")
    make_member(database, "m-dan", "Dan", "Fox")
    make_member(database, "m-eve", "Eve", "Ha", branch_id="b-south", status="SUSPENDED")
    make_member(database, "m-admin", "Ada", "Min", branch_id="b-south", role="ADMIN")

    make_election(database, "e1")
    make_position(database, "p1", "e1", "Chair", 1)
    make_position(database, "p2", "e1", "Treasurer", 2)
    make_candidate(database, "c1", "e1", "p1", "m-carol", listed=1)
    make_candidate(database, "c2", "e1", "p1", "m-dan", listed=2)
    make_candidate(database, "c5", "e1", "p1", "m-eve", listed=3, status="pending")
    make_candidate(database, "c3", "e1", "p2", "m-alice", listed=1)
    make_candidate(database, "c4", "e1", "p2", "m-bob", listed=2)
    return database


@pytest.fixture
def gate(coop, clock):
    return EligibilityGate(coop, clock=clock)


@pytest.fixture
def service(coop, clock):
    return BallotService(coop, clock=clock)


@pytest.fixture
def engine(coop):
    return TallyEngine(coop)
