from fastapi import APIRouter, Depends, Path

from dao_backend.exceptions import NotFoundError
from dao_backend.governance.conclusion import conclude_proposal
from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.proposals import create_proposal, get_proposal_with_votes, get_proposals_by_dao
from dao_backend.utils.constants import UUID_PATTERN

from .deps import get_governance, ok
from .schemas import ConcludeProposalBody, CreateProposalBody

router = APIRouter(prefix="/proposal", tags=["proposal"])


@router.post("/create")
def create(body: CreateProposalBody, ctx: GovernanceContext = Depends(get_governance)) -> dict:
    proposal = create_proposal(
        ctx,
        title=body.title,
        description=body.description,
        voting_start=body.voting_start,
        voting_end=body.voting_end,
        feedback_end=body.feedback_end,
        dao_id=body.dao_id,
    )
    return ok(proposal)


@router.post("/conclude")
def conclude(body: ConcludeProposalBody, ctx: GovernanceContext = Depends(get_governance)) -> dict:
    """Conclude the binding or the feedback phase of a proposal."""
    return ok(conclude_proposal(ctx, body.proposal_id, body.is_feedback))


@router.get("/dao/{dao_id}")
def read_by_dao(
    dao_id: str = Path(..., pattern=UUID_PATTERN),
    ctx: GovernanceContext = Depends(get_governance),
) -> dict:
    return ok(get_proposals_by_dao(ctx, dao_id))


@router.get("/{proposal_id}")
def read_one(
    proposal_id: str = Path(..., pattern=UUID_PATTERN),
    ctx: GovernanceContext = Depends(get_governance),
) -> dict:
    proposal = get_proposal_with_votes(ctx, proposal_id)
    if proposal is None:
        raise NotFoundError("Proposal not found")
    return ok(proposal)
