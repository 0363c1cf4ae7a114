from fastapi import APIRouter, Depends

from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.votes import cast_vote, get_votes_for_proposal

from .deps import get_governance, ok
from .schemas import CastVoteBody, GetVotesBody

router = APIRouter(prefix="/vote", tags=["vote"])


@router.post("")
@router.post("/", include_in_schema=False)
def vote(body: CastVoteBody, ctx: GovernanceContext = Depends(get_governance)) -> dict:
    return ok(cast_vote(ctx, body.proposal_id, body.wallet_address, body.vote, body.is_feedback))


@router.post("/proposal")
def votes_for_proposal(body: GetVotesBody, ctx: GovernanceContext = Depends(get_governance)) -> dict:
    return ok(get_votes_for_proposal(ctx, body.proposal_id, body.is_feedback, body.house))
