from fastapi import APIRouter, Depends, Path

from dao_backend.exceptions import NotFoundError
from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.daos import create_dao, get_dao, list_daos
from dao_backend.utils.constants import UUID_PATTERN

from .deps import get_governance, ok
from .schemas import CreateDaoBody

router = APIRouter(prefix="/dao", tags=["dao"])


@router.post("/create")
def create(body: CreateDaoBody, ctx: GovernanceContext = Depends(get_governance)) -> dict:
    dao = create_dao(
        ctx,
        name=body.name,
        description=body.description,
        logo=body.logo,
        owner_address=body.owner_address,
        tokens=[token.model_dump() for token in body.tokens],
        socials=body.socials.as_strings(),
        tags=body.tags,
    )
    return ok(dao)


@router.get("/")
def read_all(ctx: GovernanceContext = Depends(get_governance)) -> dict:
    return ok(list_daos(ctx))


@router.get("/{dao_id}")
def read_one(
    dao_id: str = Path(..., pattern=UUID_PATTERN),
    ctx: GovernanceContext = Depends(get_governance),
) -> dict:
    dao = get_dao(ctx, dao_id)
    if dao is None:
        raise NotFoundError("DAO not found")
    return ok(dao)
