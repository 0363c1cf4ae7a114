"""DAO registry."""
from typing import Any, Dict, List, Optional

from dao_backend.exceptions import NotFoundError
from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.members import get_member
from dao_backend.governance.memberships import join_dao
from dao_backend.utils.logger import logger

# Order of the fixed social-link vector stored on every DAO.
SOCIAL_SLOTS = ("discord", "telegram", "twitter", "website")


def socials_vector(socials: Dict[str, Optional[str]]) -> List[str]:
    return [socials.get(slot) or "" for slot in SOCIAL_SLOTS]


def _with_totals(ctx: GovernanceContext, dao: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **dao,
        "total_members": ctx.store.count("memberships", {"dao_id": dao["dao_id"]}),
        "total_proposals": ctx.store.count("proposals", {"dao_id": dao["dao_id"]}),
    }


def create_dao(
    ctx: GovernanceContext,
    *,
    name: str,
    description: str,
    logo: str,
    owner_address: str,
    tokens: List[Dict[str, Any]],
    socials: Dict[str, Optional[str]],
    tags: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Register a DAO and enroll its owner as the first member.

    Raises:
        NotFoundError: If the owner is not a registered member
    """
    owner = get_member(ctx, owner_address)
    if owner is None:
        raise NotFoundError("Member not found")

    with ctx.store.transaction():
        dao = ctx.store.insert(
            "daos",
            {
                "name": name,
                "description": description,
                "logo": logo,
                "owner_address": owner["member_id"],
                "socials": socials_vector(socials),
                "tokens": tokens,
                "tags": tags or [],
            },
        )
        join_dao(ctx, dao["dao_id"], owner["member_id"])

    logger.info("DAO %s (%s) created by %s", dao["dao_id"], name, owner["member_id"])
    return dao


def get_dao(ctx: GovernanceContext, dao_id: str) -> Optional[Dict[str, Any]]:
    dao = ctx.store.select_one("daos", {"dao_id": dao_id})
    if dao is None:
        return None
    return _with_totals(ctx, dao)


def list_daos(ctx: GovernanceContext) -> List[Dict[str, Any]]:
    return [_with_totals(ctx, dao) for dao in ctx.store.select("daos", order_by="created_at")]
