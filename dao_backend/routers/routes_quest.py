from fastapi import APIRouter, Depends, Path

from dao_backend.exceptions import NotFoundError
from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.quests import (
    create_quest,
    get_participant,
    get_quest,
    get_quest_participants,
    get_quests_by_dao,
    join_quest,
    update_participant_completion,
)
from dao_backend.utils.constants import EVM_ADDRESS_PATTERN, UUID_PATTERN

from .deps import get_governance, ok
from .schemas import CreateQuestBody, JoinQuestBody, UpdateParticipantCompletionBody

router = APIRouter(prefix="/quest", tags=["quest"])
participant_router = APIRouter(prefix="/quest-participant", tags=["quest-participant"])


@router.post("/create")
def create(body: CreateQuestBody, ctx: GovernanceContext = Depends(get_governance)) -> dict:
    fields = body.model_dump()
    for url_field in ("twitter_account_url", "twitter_post_url"):
        if fields[url_field] is not None:
            fields[url_field] = str(fields[url_field])
    return ok(create_quest(ctx, **fields))


@router.get("/dao/{dao_id}")
def read_by_dao(
    dao_id: str = Path(..., pattern=UUID_PATTERN),
    ctx: GovernanceContext = Depends(get_governance),
) -> dict:
    return ok(get_quests_by_dao(ctx, dao_id))


@router.get("/{quest_id}")
def read_one(
    quest_id: str = Path(..., pattern=UUID_PATTERN),
    ctx: GovernanceContext = Depends(get_governance),
) -> dict:
    quest = get_quest(ctx, quest_id)
    if quest is None:
        raise NotFoundError("Quest not found")
    return ok(quest)


@participant_router.post("/join")
def join(body: JoinQuestBody, ctx: GovernanceContext = Depends(get_governance)) -> dict:
    return ok(join_quest(ctx, body.quest_id, body.member_id))


@participant_router.get("/quest/{quest_id}")
def participants(
    quest_id: str = Path(..., pattern=UUID_PATTERN),
    ctx: GovernanceContext = Depends(get_governance),
) -> dict:
    return ok(get_quest_participants(ctx, quest_id))


@participant_router.get("/quest/{quest_id}/member/{member_id}")
def participant(
    quest_id: str = Path(..., pattern=UUID_PATTERN),
    member_id: str = Path(..., pattern=EVM_ADDRESS_PATTERN),
    ctx: GovernanceContext = Depends(get_governance),
) -> dict:
    found = get_participant(ctx, quest_id, member_id)
    if found is None:
        raise NotFoundError("Participant not found")
    return ok(found)


@participant_router.patch("/quest/{quest_id}/member/{member_id}/completion")
def completion(
    body: UpdateParticipantCompletionBody,
    quest_id: str = Path(..., pattern=UUID_PATTERN),
    member_id: str = Path(..., pattern=EVM_ADDRESS_PATTERN),
    ctx: GovernanceContext = Depends(get_governance),
) -> dict:
    """Patch completion flags; the reward is dispatched once all tasks are done."""
    return ok(update_participant_completion(ctx, quest_id, member_id, body.model_dump()))
