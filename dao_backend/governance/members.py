"""Member registry: wallet address to member identity and reputation."""
from typing import Any, Dict, Optional

from dao_backend.governance.context import GovernanceContext
from dao_backend.utils.constants import STARTING_REPUTATION
from dao_backend.utils.logger import logger


def normalize_address(wallet_address: str) -> str:
    return wallet_address.strip().lower()


def get_member(ctx: GovernanceContext, wallet_address: str) -> Optional[Dict[str, Any]]:
    return ctx.store.select_one("members", {"member_id": normalize_address(wallet_address)})


def get_or_create_member(ctx: GovernanceContext, wallet_address: str) -> Dict[str, Any]:
    """Return the member for ``wallet_address``, creating it on first reference."""
    member_id = normalize_address(wallet_address)
    member = ctx.store.upsert(
        "members",
        {"member_id": member_id, "reputation": STARTING_REPUTATION},
    )
    logger.debug("Resolved member %s", member_id)
    return member
