from fastapi import APIRouter, Depends

from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.memberships import get_memberships, join_dao

from .deps import get_governance, ok
from .schemas import GetMembershipsBody, JoinDaoBody

router = APIRouter(prefix="/membership", tags=["membership"])


@router.post("/join")
def join(body: JoinDaoBody, ctx: GovernanceContext = Depends(get_governance)) -> dict:
    return ok(join_dao(ctx, body.dao_id, body.wallet_address))


@router.post("/daos")
def memberships_of(body: GetMembershipsBody, ctx: GovernanceContext = Depends(get_governance)) -> dict:
    return ok(get_memberships(ctx, body.wallet_address))
