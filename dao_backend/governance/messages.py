"""Proposal discussion threads."""
from typing import Any, Dict, List

from dao_backend.exceptions import NotFoundError
from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.members import get_or_create_member
from dao_backend.governance.proposals import get_proposal


def create_message(ctx: GovernanceContext, member_id: str, proposal_id: str, message: str) -> Dict[str, Any]:
    if get_proposal(ctx, proposal_id) is None:
        raise NotFoundError("Proposal not found")
    member = get_or_create_member(ctx, member_id)
    return ctx.store.insert(
        "messages",
        {
            "member_id": member["member_id"],
            "proposal_id": proposal_id,
            "message": message,
        },
    )


def get_messages(ctx: GovernanceContext, proposal_id: str, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
    """Newest first."""
    return ctx.store.select(
        "messages",
        {"proposal_id": proposal_id},
        order_by="created_at",
        descending=True,
        limit=limit,
        offset=offset,
    )
