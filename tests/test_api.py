"""HTTP tests for the ballot and results endpoints."""

import pytest
from fastapi.testclient import TestClient

from coopvote.config import Settings
from coopvote.main import create_app
from coopvote.security import create_access_token


@pytest.fixture
def settings():
    return Settings(secret_key="test-secret", use_transactions=False, log_level="WARNING")


@pytest.fixture
def client(coop, clock, settings):
    return TestClient(create_app(settings=settings, db=coop, clock=clock))


@pytest.fixture
def auth(settings):
    def headers(member_id, role="MEMBER"):
        token = create_access_token({"sub": member_id, "role": role}, settings)
        return {"Authorization": f"Bearer {token}"}
    return headers


FULL_BALLOT = {"electionId": "e1", "votes": [
    {"positionId": "p1", "candidateId": "c1"},
    {"positionId": "p2", "candidateId": "c3"},
]}


class TestCastBallotEndpoint:
    def test_created(self, client, auth):
        response = client.post("/votes/batch", json=FULL_BALLOT, headers=auth("m-alice"))
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["votesCount"] == 2
        assert all(set(line) == {"id", "voteToken"} for line in body["votes"])

    def test_requires_session(self, client):
        response = client.post("/votes/batch", json=FULL_BALLOT)
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_rejects_forged_token(self, client):
        response = client.post("/votes/batch", json=FULL_BALLOT, headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_second_ballot_conflicts(self, client, auth):
        client.post("/votes/batch", json=FULL_BALLOT, headers=auth("m-alice"))
        response = client.post("/votes/batch", json=FULL_BALLOT, headers=auth("m-alice"))
        assert response.status_code == 409
        assert response.json() == {"error": "You have already voted in this election"}

    def test_inactive_member(self, client, auth):
        response = client.post("/votes/batch", json=FULL_BALLOT, headers=auth("m-eve"))
        assert response.status_code == 403

    def test_unknown_election(self, client, auth):
        response = client.post("/votes/batch", json={**FULL_BALLOT, "electionId": "nope"}, headers=auth("m-alice"))
        assert response.status_code == 404
        assert response.json() == {"error": "Election not found"}

    def test_incomplete_ballot(self, client, auth):
        body = {"electionId": "e1", "votes": [{"positionId": "p1", "candidateId": "c1"}]}
        response = client.post("/votes/batch", json=body, headers=auth("m-alice"))
        assert response.status_code == 400
        assert "incomplete" in response.json()["error"]

    def test_malformed_body(self, client, auth):
        response = client.post("/votes/batch", json={"electionId": "e1", "votes": []}, headers=auth("m-alice"))
        assert response.status_code == 400
        assert "error" in response.json()


class TestCheckEndpoint:
    def test_eligible_then_already_voted(self, client, auth):
        assert client.get("/votes/check/e1", headers=auth("m-bob")).json() == {"status": "eligible", "reason": None}
        client.post("/votes/batch", json=FULL_BALLOT, headers=auth("m-bob"))
        assert client.get("/votes/check/e1", headers=auth("m-bob")).json() == {
            "status": "already_voted", "reason": "AlreadyVoted"
        }

    def test_ineligible(self, client, auth):
        assert client.get("/votes/check/e1", headers=auth("m-eve")).json() == {
            "status": "ineligible", "reason": "MemberNotActive"
        }


class TestResultsEndpoint:
    def test_public_and_shaped(self, client, auth):
        client.post("/votes/batch", json=FULL_BALLOT, headers=auth("m-alice"))
        response = client.get("/elections/e1/results")
        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"election", "anonymity", "results", "summary", "branchBreakdown"}
        assert body["anonymity"] == {"isEnabled": False, "canReveal": False, "isRevealed": True}
        chair = body["results"][0]
        assert chair["totalVotes"] == 1
        assert chair["candidates"][0]["name"] == "Carol Diaz"
        assert chair["candidates"][0]["voteCount"] == 1
        assert chair["candidates"][0]["percentage"] == 100.0
        assert body["summary"]["overallParticipationRate"] == 20.0

    def test_unknown_election(self, client):
        response = client.get("/elections/nope/results")
        assert response.status_code == 404
        assert response.json() == {"error": "Election not found"}

    def test_admin_gets_reveal_capability(self, client, auth):
        body = client.get("/elections/e1/results", headers=auth("m-admin", role="ADMIN")).json()
        assert body["anonymity"]["canReveal"] is True

    def test_garbage_token_reads_as_anonymous(self, client):
        response = client.get("/elections/e1/results", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 200
        assert response.json()["anonymity"]["canReveal"] is False

    def test_expired_admin_token_reads_as_anonymous(self, client, settings):
        token = create_access_token({"sub": "m-admin", "role": "ADMIN"}, settings, expires_minutes=-5)
        response = client.get("/elections/e1/results", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["anonymity"]["canReveal"] is False

    def test_expired_token_still_guards_the_anonymity_flip(self, client, settings):
        token = create_access_token({"sub": "m-admin", "role": "ADMIN"}, settings, expires_minutes=-5)
        response = client.patch(
            "/elections/e1/anonymity", json={"isAnonymous": True}, headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    def test_flag_flip_applies_on_next_poll(self, coop, client, auth):
        coop.elections.update_one({"_id": "e1"}, {"$set": {"is_anonymous": True}})
        client.post("/votes/batch", json=FULL_BALLOT, headers=auth("m-alice"))

        hidden = client.get("/elections/e1/results").json()
        assert [c["name"] for c in hidden["results"][0]["candidates"]] == ["Candidate A", "Candidate B"]
        assert hidden["results"][0]["candidates"][0]["email"] is None

        response = client.patch(
            "/elections/e1/anonymity", json={"isAnonymous": False}, headers=auth("m-admin", role="ADMIN")
        )
        assert response.status_code == 200
        assert response.json()["isRevealed"] is True

        shown = client.get("/elections/e1/results").json()
        assert [c["name"] for c in shown["results"][0]["candidates"]] == ["Carol Diaz", "Dan Fox"]
        assert [c["voteCount"] for c in shown["results"][0]["candidates"]] == \
            [c["voteCount"] for c in hidden["results"][0]["candidates"]]

    def test_only_admins_flip_anonymity(self, client, auth):
        response = client.patch("/elections/e1/anonymity", json={"isAnonymous": True}, headers=auth("m-alice"))
        assert response.status_code == 403

    def test_flip_unknown_election(self, client, auth):
        response = client.patch(
            "/elections/nope/anonymity", json={"isAnonymous": True}, headers=auth("m-admin", role="ADMIN")
        )
        assert response.status_code == 404


class TestVotingElectionsEndpoint:
    def test_lists_open_elections(self, client, auth):
        body = client.get("/voting/elections", headers=auth("m-alice")).json()
        assert [(e["id"], e["hasVoted"], e["canVote"]) for e in body] == [("e1", False, True)]
        assert [p["title"] for p in body[0]["positions"]] == ["Chair", "Treasurer"]

    def test_reflects_cast_ballot(self, client, auth):
        client.post("/votes/batch", json=FULL_BALLOT, headers=auth("m-alice"))
        body = client.get("/voting/elections", headers=auth("m-alice")).json()
        assert (body[0]["hasVoted"], body[0]["canVote"]) == (True, False)


class TestKioskEndpoint:
    def test_issues_session_usable_for_voting(self, client):
        response = client.post("/auth/kiosk", json={"memberNumber": "N-m-carol"})
        assert response.status_code == 200
        token = response.json()["access_token"]
        cast = client.post("/votes/batch", json=FULL_BALLOT, headers={"Authorization": f"Bearer {token}"})
        assert cast.status_code == 201

    def test_refused_after_voting_everywhere(self, client, auth):
        client.post("/votes/batch", json=FULL_BALLOT, headers=auth("m-carol"))
        response = client.post("/auth/kiosk", json={"memberNumber": "N-m-carol"})
        assert response.status_code == 409
        assert response.json() == {"error": "You have already voted in this election"}


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy", "database": "MongoDB"}
