"""
Vote ledger.

A member casts at most one vote per proposal per phase. Weights are fixed
by phase and never taken from the request.
"""
from typing import Any, Dict, List, Optional

from dao_backend.exceptions import BadRequestError, ConflictError, DuplicateRecordError, NotFoundError
from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.members import get_or_create_member, normalize_address
from dao_backend.governance.memberships import ensure_member
from dao_backend.governance.proposals import get_proposal
from dao_backend.utils.constants import BINDING_VOTE_WEIGHT, FEEDBACK_VOTE_WEIGHT, House, VoteType
from dao_backend.utils.logger import logger


def vote_weight(is_feedback: bool) -> int:
    return FEEDBACK_VOTE_WEIGHT if is_feedback else BINDING_VOTE_WEIGHT


def get_vote(ctx: GovernanceContext, proposal_id: str, member_id: str, is_feedback: bool) -> Optional[Dict[str, Any]]:
    return ctx.store.select_one(
        "votes",
        {
            "proposal_id": proposal_id,
            "member_id": normalize_address(member_id),
            "is_feedback": is_feedback,
        },
    )


def _check_window(proposal: Dict[str, Any], now, is_feedback: bool) -> None:
    if is_feedback:
        # Feedback has no lower bound; it may overlap the binding window.
        if now > proposal["feedback_end"]:
            raise BadRequestError("Feedback voting has ended")
        return

    if now < proposal["voting_start"]:
        raise BadRequestError("Voting has not started yet")
    if now > proposal["voting_end"]:
        raise BadRequestError("Voting has ended")


def cast_vote(
    ctx: GovernanceContext,
    proposal_id: str,
    wallet_address: str,
    vote: VoteType,
    is_feedback: bool,
) -> Dict[str, Any]:
    """
    Record a member's vote for one phase of a proposal.

    Raises:
        NotFoundError: If the proposal does not exist
        ConflictError: If the member already voted in this phase
        BadRequestError: If the caller is not a DAO member or the window is closed
    """
    member_id = normalize_address(wallet_address)

    proposal = get_proposal(ctx, proposal_id)
    if proposal is None:
        raise NotFoundError("Proposal not found")

    if get_vote(ctx, proposal_id, member_id, is_feedback) is not None:
        logger.warning("Member %s already voted on proposal %s (feedback=%s)", member_id, proposal_id, is_feedback)
        raise ConflictError("User has already voted")

    membership = ensure_member(ctx, proposal["dao_id"], member_id)

    _check_window(proposal, ctx.clock(), is_feedback)

    member = get_or_create_member(ctx, member_id)

    try:
        stored = ctx.store.insert(
            "votes",
            {
                "proposal_id": proposal_id,
                "member_id": member["member_id"],
                "dao_id": proposal["dao_id"],
                "is_feedback": is_feedback,
                "vote": VoteType(vote).value,
                "house": membership["house"],
                "weight": vote_weight(is_feedback),
            },
        )
    except DuplicateRecordError as e:
        raise ConflictError("User has already voted") from e

    logger.info(
        "Member %s voted %s on proposal %s (feedback=%s, weight=%d)",
        member_id, stored["vote"], proposal_id, is_feedback, stored["weight"],
    )
    return stored


def get_votes_for_proposal(
    ctx: GovernanceContext,
    proposal_id: str,
    is_feedback: bool,
    house: Optional[House] = None,
) -> List[Dict[str, Any]]:
    """Votes for one phase; the house filter applies to the binding phase only."""
    filters: Dict[str, Any] = {"proposal_id": proposal_id, "is_feedback": is_feedback}
    if not is_feedback and house:
        filters["house"] = House(house).value
    return ctx.store.select("votes", filters, order_by="created_at")
