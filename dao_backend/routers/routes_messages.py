from fastapi import APIRouter, Depends

from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.messages import create_message, get_messages

from .deps import get_governance, ok
from .schemas import CreateMessageBody, MessageHistoryBody

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("/create")
def create(body: CreateMessageBody, ctx: GovernanceContext = Depends(get_governance)) -> dict:
    return ok(create_message(ctx, body.member_id, body.proposal_id, body.message))


@router.post("/history")
def history(body: MessageHistoryBody, ctx: GovernanceContext = Depends(get_governance)) -> dict:
    return ok(get_messages(ctx, body.proposal_id, limit=body.limit, offset=body.offset))
