"""
Proposal store.

Proposals carry two independent windows: the binding vote between
``voting_start`` and ``voting_end`` and the feedback vote, open until
``feedback_end``. Each window concludes separately (see ``conclusion``).
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from dao_backend.exceptions import NotFoundError, ValidationError
from dao_backend.governance.context import GovernanceContext
from dao_backend.utils.houses import assign_house
from dao_backend.utils.logger import logger


def validate_voting_windows(
    now: datetime,
    voting_start: datetime,
    voting_end: datetime,
    feedback_end: datetime,
) -> None:
    """
    Enforce ``now < voting_start < voting_end < feedback_end``.

    Raises:
        ValidationError: Listing every violated bound with its field path
    """
    problems = []
    if voting_start <= now:
        problems.append(("voting_start", "Voting start must be in the future"))
    if voting_end <= voting_start:
        problems.append(("voting_end", "Voting end must be after voting start"))
    if feedback_end <= voting_end:
        problems.append(("feedback_end", "Feedback end must be after voting end"))

    if problems:
        message = ". ".join(f"'{field}': {text}" for field, text in problems)
        raise ValidationError(message)


def create_proposal(
    ctx: GovernanceContext,
    *,
    title: str,
    description: str,
    voting_start: datetime,
    voting_end: datetime,
    feedback_end: datetime,
    dao_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Validate the windows, assign a house and persist the proposal.

    Raises:
        ValidationError: If the windows are out of order or start in the past
        NotFoundError: If ``dao_id`` names a DAO that does not exist
    """
    validate_voting_windows(ctx.clock(), voting_start, voting_end, feedback_end)

    if dao_id is not None and ctx.store.select_one("daos", {"dao_id": dao_id}) is None:
        raise NotFoundError("DAO not found")

    proposal = ctx.store.insert(
        "proposals",
        {
            "title": title,
            "description": description,
            "dao_id": dao_id,
            "voting_start": voting_start,
            "voting_end": voting_end,
            "feedback_end": feedback_end,
            "voting_house": assign_house().value,
        },
    )
    logger.info(
        "Proposal %s created for DAO %s (house %s, voting %s -> %s, feedback until %s)",
        proposal["proposal_id"], dao_id, proposal["voting_house"],
        voting_start.isoformat(), voting_end.isoformat(), feedback_end.isoformat(),
    )

    if ctx.archive is not None:
        ctx.archive.store_proposal(
            proposal["proposal_id"],
            {
                "title": title,
                "description": description,
                "dao_id": dao_id,
                "voting_start": voting_start.isoformat(),
                "voting_end": voting_end.isoformat(),
                "feedback_end": feedback_end.isoformat(),
            },
        )

    return proposal


def get_proposal(ctx: GovernanceContext, proposal_id: str) -> Optional[Dict[str, Any]]:
    return ctx.store.select_one("proposals", {"proposal_id": proposal_id})


def get_proposal_with_votes(ctx: GovernanceContext, proposal_id: str) -> Optional[Dict[str, Any]]:
    proposal = get_proposal(ctx, proposal_id)
    if proposal is None:
        return None
    votes = ctx.store.select("votes", {"proposal_id": proposal_id}, order_by="created_at")
    return {**proposal, "votes": votes}


def get_proposals_by_dao(ctx: GovernanceContext, dao_id: str) -> List[Dict[str, Any]]:
    return ctx.store.select("proposals", {"dao_id": dao_id}, order_by="created_at", descending=True)
