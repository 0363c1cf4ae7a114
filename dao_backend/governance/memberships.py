"""
Membership ledger.

Many-to-many relation between members and DAOs. Each membership is given
a voting house at join time and carries a DAO-scoped reputation score.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from dao_backend.exceptions import BadRequestError, ConflictError, DuplicateRecordError, NotFoundError
from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.members import get_member, normalize_address
from dao_backend.utils.constants import STARTING_REPUTATION
from dao_backend.utils.houses import assign_house
from dao_backend.utils.logger import logger


@dataclass(frozen=True)
class ReputationChange:
    member_id: str
    dao_id: str
    change: int


def get_membership(ctx: GovernanceContext, member_id: str, dao_id: str) -> Optional[Dict[str, Any]]:
    return ctx.store.select_one(
        "memberships",
        {"member_id": normalize_address(member_id), "dao_id": dao_id},
    )


def get_memberships(ctx: GovernanceContext, wallet_address: str) -> List[Dict[str, Any]]:
    return ctx.store.select(
        "memberships",
        {"member_id": normalize_address(wallet_address)},
        order_by="created_at",
    )


def join_dao(ctx: GovernanceContext, dao_id: str, wallet_address: str) -> Dict[str, Any]:
    """
    Add a member to a DAO in a randomly assigned house.

    Raises:
        NotFoundError: If the DAO or the member does not exist
        ConflictError: If the member already belongs to the DAO
    """
    if ctx.store.select_one("daos", {"dao_id": dao_id}) is None:
        raise NotFoundError("DAO not found")

    member = get_member(ctx, wallet_address)
    if member is None:
        raise NotFoundError("Member not found")
    member_id = member["member_id"]

    if get_membership(ctx, member_id, dao_id) is not None:
        logger.warning("Member %s tried to join DAO %s twice", member_id, dao_id)
        raise ConflictError("Already a member of the DAO")

    try:
        membership = ctx.store.insert(
            "memberships",
            {
                "dao_id": dao_id,
                "member_id": member_id,
                "house": assign_house().value,
                "reputation": STARTING_REPUTATION,
            },
        )
    except DuplicateRecordError as e:
        raise ConflictError("Already a member of the DAO") from e

    logger.info("Member %s joined DAO %s in house %s", member_id, dao_id, membership["house"])
    return membership


def change_reputation(ctx: GovernanceContext, changes: List[ReputationChange]) -> None:
    """
    Apply a batch of additive reputation changes.

    Each change is added to the DAO membership and to the member's global
    score in a single transaction: either every row moves or none does.
    There is no floor or ceiling; reputation may go negative.

    Raises:
        NotFoundError: If any change targets a missing membership
    """
    pending = [change for change in changes if change.change != 0]
    for change in pending:
        if get_membership(ctx, change.member_id, change.dao_id) is None:
            raise NotFoundError("Membership not found")

    with ctx.store.transaction():
        for change in pending:
            member_id = normalize_address(change.member_id)
            ctx.store.increment(
                "memberships", "reputation", change.change,
                {"member_id": member_id, "dao_id": change.dao_id},
            )
            ctx.store.increment("members", "reputation", change.change, {"member_id": member_id})

    logger.info("Applied %d reputation changes", len(pending))


def ensure_member(ctx: GovernanceContext, dao_id: str, wallet_address: str) -> Dict[str, Any]:
    """Membership lookup used by voting; absent membership is a rejected request."""
    membership = get_membership(ctx, wallet_address, dao_id) if dao_id else None
    if membership is None:
        raise BadRequestError("User is not a member of this DAO")
    return membership
