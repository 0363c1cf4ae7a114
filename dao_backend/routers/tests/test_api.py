"""
API tests through FastAPI's TestClient.

The governance context is built on the in-memory store so the full request
path (schemas, services, error handlers) runs without a database.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from dao_backend.config import Settings
from dao_backend.exceptions import StoreError
from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.tests.fakes import FakeClock, InMemoryStore, set_house, wallet
from dao_backend.main import create_app
from dao_backend.services.rewards import RewardDispatcher

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
OWNER = wallet(0xA)
MEMBER = wallet(0xB)


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def rewards():
    dispatcher = MagicMock(spec=RewardDispatcher)
    dispatcher.distribute_merits.return_value = {"id": "receipt"}
    return dispatcher


@pytest.fixture
def client(store, rewards, clock):
    context = GovernanceContext(store=store, rewards=rewards, clock=clock)
    return TestClient(create_app(settings=Settings(), context=context), raise_server_exceptions=False)


@pytest.fixture
def dao(client):
    client.get(f"/api/v1/member/{OWNER}")
    client.get(f"/api/v1/member/{MEMBER}")
    response = client.post("/api/v1/dao/create", json={
        "name": "API DAO",
        "description": "Created over HTTP",
        "logo": "https://example.com/logo.png",
        "owner_address": OWNER,
        "tokens": [{"token_address": wallet(0x70), "chain_id": 8453}],
        "socials": {"discord": "https://discord.gg/apidao"},
    })
    assert response.status_code == 200
    created = response.json()["data"]
    assert client.post("/api/v1/membership/join", json={
        "dao_id": created["dao_id"], "wallet_address": MEMBER,
    }).status_code == 200
    return created


@pytest.fixture
def proposal(client, dao):
    response = client.post("/api/v1/proposal/create", json={
        "title": "Ship it",
        "description": "Release v1",
        "dao_id": dao["dao_id"],
        "voting_start": (NOW + timedelta(hours=1)).isoformat(),
        "voting_end": (NOW + timedelta(hours=2)).isoformat(),
        "feedback_end": (NOW + timedelta(hours=3)).isoformat(),
    })
    assert response.status_code == 200
    return response.json()["data"]


class TestServiceSurface:
    def test_healthcheck(self, client):
        body = client.get("/healthcheck").json()
        assert body["success"] is True
        assert body["status"] == "ok"
        assert body["database"] == "connected"
        assert body["pool_stats"] == {"failure_count": 0, "pool_exists": True}
        assert "timestamp" in body and "uptime" in body

    def test_healthcheck_reports_pool_backoff(self, client, store):
        store.stats = {"pool_exists": False, "failure_count": 3, "in_backoff": True}
        store.ping = MagicMock()

        body = client.get("/healthcheck").json()
        assert body["status"] == "degraded"
        assert body["database"] == "backoff mode"
        assert body["pool_stats"] == {"failure_count": 3, "pool_exists": False}
        store.ping.assert_not_called()

    def test_healthcheck_reports_database_error(self, client, store):
        store.ping = MagicMock(side_effect=StoreError("Database error: connection refused"))

        body = client.get("/healthcheck").json()
        assert body["status"] == "degraded"
        assert body["database"] == "error: Database error: connection refused"

    def test_unknown_route(self, client):
        response = client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Not Found"}

    def test_unexpected_error_is_500(self, client, store):
        store.select = MagicMock(side_effect=RuntimeError("boom"))
        response = client.get("/api/v1/dao/")
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Internal Server Error"}


class TestMembersAndDaos:
    def test_member_is_created_on_first_lookup(self, client):
        response = client.get("/api/v1/member/0xABCDEF0000000000000000000000000000000001")
        assert response.json() == {
            "success": True,
            "data": {
                "member_id": "0xabcdef0000000000000000000000000000000001",
                "reputation": 10,
                "created_at": response.json()["data"]["created_at"],
            },
        }

    def test_malformed_wallet(self, client):
        response = client.get("/api/v1/member/not-a-wallet")
        assert response.status_code == 400
        assert response.json()["name"] == "Validation Error"
        assert response.json()["message"].startswith("'wallet_address':")

    def test_dao_created_with_owner_membership(self, client, dao):
        assert dao["socials"] == ["https://discord.gg/apidao", "", "", ""]
        memberships = client.post("/api/v1/membership/daos", json={"wallet_address": OWNER}).json()["data"]
        assert [row["dao_id"] for row in memberships] == [dao["dao_id"]]

        found = client.get(f"/api/v1/dao/{dao['dao_id']}").json()["data"]
        assert found["total_members"] == 2

    def test_missing_dao(self, client):
        response = client.get("/api/v1/dao/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "DAO not found"}

    def test_malformed_dao_ids_are_400(self, client, dao):
        joined = client.post("/api/v1/membership/join", json={"dao_id": "abc", "wallet_address": MEMBER})
        assert joined.status_code == 400
        assert joined.json()["name"] == "Validation Error"
        assert joined.json()["message"].startswith("'dao_id':")

        for path in ("/api/v1/dao/abc", "/api/v1/proposal/dao/abc", "/api/v1/quest/dao/abc"):
            response = client.get(path)
            assert response.status_code == 400, path
            assert response.json()["message"].startswith("'dao_id':"), path

    def test_joining_twice_is_400(self, client, dao):
        response = client.post("/api/v1/membership/join", json={"dao_id": dao["dao_id"], "wallet_address": MEMBER})
        assert response.status_code == 400
        assert response.json()["message"] == "Already a member of the DAO"


class TestProposalsAndVotes:
    def test_schema_errors_use_field_paths(self, client):
        response = client.post("/api/v1/proposal/create", json={"title": "Missing fields"})
        assert response.status_code == 400
        body = response.json()
        assert body["name"] == "Validation Error"
        assert "'voting_end': Field required" in body["message"]

    def test_window_errors_use_validation_shape(self, client, dao):
        response = client.post("/api/v1/proposal/create", json={
            "title": "Backwards",
            "description": "End before start",
            "dao_id": dao["dao_id"],
            "voting_start": (NOW + timedelta(hours=2)).isoformat(),
            "voting_end": (NOW + timedelta(hours=1)).isoformat(),
            "feedback_end": (NOW + timedelta(hours=3)).isoformat(),
        })
        assert response.status_code == 400
        assert response.json() == {
            "name": "Validation Error",
            "message": "'voting_end': Voting end must be after voting start",
        }

    def test_naive_datetimes_are_rejected(self, client, dao):
        response = client.post("/api/v1/proposal/create", json={
            "title": "Naive",
            "description": "No timezone",
            "voting_start": "2030-01-01T10:00:00",
            "voting_end": "2030-01-01T11:00:00",
            "feedback_end": "2030-01-01T12:00:00",
        })
        assert response.status_code == 400

    def test_client_weight_is_ignored(self, client, proposal, clock):
        clock.advance(minutes=90)
        response = client.post("/api/v1/vote", json={
            "proposal_id": proposal["proposal_id"],
            "wallet_address": MEMBER,
            "vote": "YES",
            "is_feedback": False,
            "weight": 1000000,
        })
        assert response.status_code == 200
        assert response.json()["data"]["weight"] == 100

    def test_invalid_vote_value(self, client, proposal):
        response = client.post("/api/v1/vote", json={
            "proposal_id": proposal["proposal_id"], "wallet_address": MEMBER, "vote": "MAYBE", "is_feedback": True,
        })
        assert response.status_code == 400
        assert response.json()["message"].startswith("'vote':")

    def test_vote_before_start(self, client, proposal):
        response = client.post("/api/v1/vote", json={
            "proposal_id": proposal["proposal_id"], "wallet_address": MEMBER, "vote": "YES", "is_feedback": False,
        })
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Voting has not started yet"}

    def test_conclude_and_read_back(self, client, proposal, clock, store):
        set_house(store, proposal["dao_id"], MEMBER, proposal["voting_house"])
        clock.advance(minutes=90)
        client.post("/api/v1/vote", json={
            "proposal_id": proposal["proposal_id"], "wallet_address": MEMBER, "vote": "YES", "is_feedback": False,
        })
        clock.advance(hours=1)

        concluded = client.post("/api/v1/proposal/conclude", json={
            "proposal_id": proposal["proposal_id"], "is_feedback": False,
        })
        assert concluded.json()["data"]["conclusion"] == "YES"

        again = client.post("/api/v1/proposal/conclude", json={
            "proposal_id": proposal["proposal_id"], "is_feedback": False,
        })
        assert again.status_code == 400
        assert again.json()["message"] == "Proposal has already been concluded"

        read = client.get(f"/api/v1/proposal/{proposal['proposal_id']}").json()["data"]
        assert read["conclusion"] == "YES"
        assert len(read["votes"]) == 1

        votes = client.post("/api/v1/vote/proposal", json={
            "proposal_id": proposal["proposal_id"], "is_feedback": False, "house": proposal["voting_house"],
        }).json()["data"]
        assert [vote["member_id"] for vote in votes] == [MEMBER]

    def test_feedback_conclusion_envelope(self, client, proposal, clock, rewards):
        client.post("/api/v1/vote", json={
            "proposal_id": proposal["proposal_id"], "wallet_address": MEMBER, "vote": "NO", "is_feedback": True,
        })
        clock.advance(hours=4)

        data = client.post("/api/v1/proposal/conclude", json={
            "proposal_id": proposal["proposal_id"], "is_feedback": True,
        }).json()["data"]

        assert data["merits"] == {"id": "receipt"}
        assert data["proposal"]["feedback_conclusion"] == "NO"

    def test_unknown_proposal(self, client):
        response = client.get("/api/v1/proposal/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404
        assert response.json()["message"] == "Proposal not found"

    def test_proposals_by_dao(self, client, dao, proposal):
        rows = client.get(f"/api/v1/proposal/dao/{dao['dao_id']}").json()["data"]
        assert [row["proposal_id"] for row in rows] == [proposal["proposal_id"]]


class TestQuestsAndMessages:
    @pytest.fixture
    def quest(self, client, dao):
        response = client.post("/api/v1/quest/create", json={
            "dao_id": dao["dao_id"],
            "start_time": NOW.isoformat(),
            "end_time": (NOW + timedelta(days=3)).isoformat(),
            "title": "Follow us",
            "description": "Follow the DAO account",
            "reward_merits": 10,
            "twitter_account_url": "https://x.com/apidao",
            "twitter_follow_enabled": True,
            "twitter_like_enabled": False,
            "twitter_retweet_enabled": False,
        })
        assert response.status_code == 200
        return response.json()["data"]

    def test_quest_completion_flow(self, client, quest, rewards):
        joined = client.post("/api/v1/quest-participant/join", json={
            "member_id": MEMBER, "quest_id": quest["quest_id"],
        }).json()["data"]
        assert joined["twitter_follow_completed"] is False
        assert joined["twitter_like_completed"] is True

        path = f"/api/v1/quest-participant/quest/{quest['quest_id']}/member/{MEMBER}/completion"
        assert client.patch(path, json={}).status_code == 400

        done = client.patch(path, json={"twitter_follow_completed": True}).json()["data"]
        assert done["rewarded_at"] is not None
        rewards.distribute_merits.assert_called_once()

        participants = client.get(f"/api/v1/quest-participant/quest/{quest['quest_id']}").json()["data"]
        assert [row["member_id"] for row in participants] == [MEMBER]

    def test_malformed_member_ids_are_400(self, client, quest, proposal):
        joined = client.post("/api/v1/quest-participant/join", json={"member_id": "alice", "quest_id": quest["quest_id"]})
        assert joined.status_code == 400
        assert joined.json()["message"].startswith("'member_id':")

        posted = client.post("/api/v1/messages/create", json={
            "member_id": "alice", "proposal_id": proposal["proposal_id"], "message": "hi",
        })
        assert posted.status_code == 400

        lookup = client.get(f"/api/v1/quest-participant/quest/{quest['quest_id']}/member/alice")
        assert lookup.status_code == 400
        assert client.get("/api/v1/quest-participant/quest/not-a-uuid").status_code == 400
        assert client.get("/api/v1/quest/not-a-uuid").status_code == 400
        assert client.get("/api/v1/proposal/not-a-uuid").status_code == 400

    def test_quest_lookup(self, client, dao, quest):
        assert client.get(f"/api/v1/quest/{quest['quest_id']}").json()["data"]["title"] == "Follow us"
        assert len(client.get(f"/api/v1/quest/dao/{dao['dao_id']}").json()["data"]) == 1
        missing = client.get(f"/api/v1/quest-participant/quest/{quest['quest_id']}/member/{OWNER}")
        assert missing.status_code == 404

    def test_quest_requires_positive_reward(self, client, dao):
        response = client.post("/api/v1/quest/create", json={
            "dao_id": dao["dao_id"],
            "start_time": NOW.isoformat(),
            "end_time": (NOW + timedelta(days=3)).isoformat(),
            "title": "Free",
            "description": "No reward",
            "reward_merits": 0,
            "twitter_follow_enabled": False,
            "twitter_like_enabled": False,
            "twitter_retweet_enabled": False,
        })
        assert response.status_code == 400
        assert response.json()["message"].startswith("'reward_merits':")

    def test_messages(self, client, proposal):
        for text in ("first", "second"):
            assert client.post("/api/v1/messages/create", json={
                "member_id": MEMBER, "proposal_id": proposal["proposal_id"], "message": text,
            }).status_code == 200

        history = client.post("/api/v1/messages/history", json={
            "proposal_id": proposal["proposal_id"], "limit": "1",
        }).json()["data"]
        assert [row["message"] for row in history] == ["second"]

    def test_history_limit_bounds(self, client, proposal):
        response = client.post("/api/v1/messages/history", json={
            "proposal_id": proposal["proposal_id"], "limit": 101,
        })
        assert response.status_code == 400
