from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.daos import create_dao
from dao_backend.governance.members import get_or_create_member
from dao_backend.governance.memberships import join_dao
from dao_backend.governance.proposals import create_proposal
from dao_backend.services.rewards import RewardDispatcher

from .fakes import OWNER, VOTER_B, VOTER_C, VOTER_D, VOTER_E, FakeClock, InMemoryStore, wallet

START = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FakeClock(START)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def rewards():
    dispatcher = MagicMock(spec=RewardDispatcher)
    dispatcher.distribute_merits.return_value = {"id": "receipt", "status": "completed"}
    return dispatcher


@pytest.fixture
def ctx(store, rewards, clock):
    return GovernanceContext(store=store, rewards=rewards, clock=clock)


@pytest.fixture
def dao(ctx):
    """A DAO owned by OWNER with B, C, D and E as members."""
    get_or_create_member(ctx, OWNER)
    created = create_dao(
        ctx,
        name="Test DAO",
        description="Governance playground",
        logo="https://example.com/logo.png",
        owner_address=OWNER,
        tokens=[{"token_address": wallet(0x70), "chain_id": 1}],
        socials={"twitter": "https://x.com/testdao"},
    )
    for member in (VOTER_B, VOTER_C, VOTER_D, VOTER_E):
        get_or_create_member(ctx, member)
        join_dao(ctx, created["dao_id"], member)
    return created


@pytest.fixture
def proposal(ctx, dao, clock):
    """Voting opens in 1h, closes in 2h; feedback closes in 3h."""
    return create_proposal(
        ctx,
        title="Fund the hackathon",
        description="Allocate treasury funds",
        dao_id=dao["dao_id"],
        voting_start=clock.now + timedelta(hours=1),
        voting_end=clock.now + timedelta(hours=2),
        feedback_end=clock.now + timedelta(hours=3),
    )
