"""
Quests and quest participation.

A participant completes a quest by finishing its three social tasks. Tasks
the quest does not require start out completed. When all three are done the
participant is rewarded once: the ``rewarded_at`` marker is claimed with a
compare-and-set update before merits are dispatched and released again if
the dispatch fails.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from dao_backend.exceptions import (
    BadRequestError,
    ConflictError,
    DuplicateRecordError,
    GovernanceError,
    NotFoundError,
    ValidationError,
)
from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.members import get_or_create_member, normalize_address
from dao_backend.utils.logger import logger

COMPLETION_FLAGS = {
    "twitter_follow_completed": "twitter_follow_enabled",
    "twitter_like_completed": "twitter_like_enabled",
    "twitter_retweet_completed": "twitter_retweet_enabled",
}


def create_quest(
    ctx: GovernanceContext,
    *,
    dao_id: str,
    start_time: datetime,
    end_time: datetime,
    title: str,
    description: str,
    reward_merits: int,
    twitter_follow_enabled: bool,
    twitter_like_enabled: bool,
    twitter_retweet_enabled: bool,
    reward_token_chain: Optional[int] = None,
    reward_token_address: Optional[str] = None,
    reward_token_amount: Optional[float] = None,
    twitter_account_url: Optional[str] = None,
    twitter_post_url: Optional[str] = None,
) -> Dict[str, Any]:
    problems = []
    token_fields = (reward_token_chain, reward_token_address, reward_token_amount)
    if any(value is not None for value in token_fields) and not all(value is not None for value in token_fields):
        problems.append((
            "reward_token_chain",
            "If providing token rewards, all token fields (chain, address, amount) must be provided",
        ))
    if twitter_follow_enabled and not twitter_account_url:
        problems.append(("twitter_account_url", "Twitter account URL is required when follow is enabled"))
    if (twitter_like_enabled or twitter_retweet_enabled) and not twitter_post_url:
        problems.append(("twitter_post_url", "Twitter post URL is required when like or retweet is enabled"))
    if problems:
        raise ValidationError(". ".join(f"'{field}': {text}" for field, text in problems))

    if start_time >= end_time:
        raise BadRequestError("Start time must be before end time")

    if ctx.store.select_one("daos", {"dao_id": dao_id}) is None:
        raise NotFoundError("DAO not found")

    quest = ctx.store.insert(
        "quests",
        {
            "dao_id": dao_id,
            "start_time": start_time,
            "end_time": end_time,
            "title": title,
            "description": description,
            "reward_merits": reward_merits,
            "reward_token_chain": reward_token_chain,
            "reward_token_address": reward_token_address.lower() if reward_token_address else None,
            "reward_token_amount": reward_token_amount,
            "twitter_account_url": twitter_account_url,
            "twitter_post_url": twitter_post_url,
            "twitter_follow_enabled": twitter_follow_enabled,
            "twitter_like_enabled": twitter_like_enabled,
            "twitter_retweet_enabled": twitter_retweet_enabled,
        },
    )
    logger.info("Quest %s created for DAO %s", quest["quest_id"], dao_id)
    return quest


def get_quest(ctx: GovernanceContext, quest_id: str) -> Optional[Dict[str, Any]]:
    return ctx.store.select_one("quests", {"quest_id": quest_id})


def get_quests_by_dao(ctx: GovernanceContext, dao_id: str) -> List[Dict[str, Any]]:
    return ctx.store.select("quests", {"dao_id": dao_id}, order_by="created_at", descending=True)


def get_participant(ctx: GovernanceContext, quest_id: str, member_id: str) -> Optional[Dict[str, Any]]:
    return ctx.store.select_one(
        "quest_participant",
        {"quest_id": quest_id, "member_id": normalize_address(member_id)},
    )


def get_quest_participants(ctx: GovernanceContext, quest_id: str) -> List[Dict[str, Any]]:
    return ctx.store.select("quest_participant", {"quest_id": quest_id}, order_by="created_at", descending=True)


def join_quest(ctx: GovernanceContext, quest_id: str, member_id: str) -> Dict[str, Any]:
    """
    Enroll a member in a quest; disabled tasks are pre-satisfied.

    Raises:
        NotFoundError: If the quest does not exist
        ConflictError: If the member already participates
    """
    quest = get_quest(ctx, quest_id)
    if quest is None:
        raise NotFoundError("Quest not found")

    member_id = normalize_address(member_id)
    if get_participant(ctx, quest_id, member_id) is not None:
        raise ConflictError("Participant already exists")

    get_or_create_member(ctx, member_id)
    row = {"quest_id": quest_id, "member_id": member_id}
    for flag, requirement in COMPLETION_FLAGS.items():
        row[flag] = not quest[requirement]

    try:
        participant = ctx.store.insert("quest_participant", row)
    except DuplicateRecordError as e:
        raise ConflictError("Participant already exists") from e

    logger.info("Member %s joined quest %s", member_id, quest_id)
    return participant


def update_participant_completion(
    ctx: GovernanceContext,
    quest_id: str,
    member_id: str,
    completion: Dict[str, Optional[bool]],
) -> Dict[str, Any]:
    """
    Patch one or more completion flags and reward the participant once all are set.

    Raises:
        BadRequestError: If no completion flag is supplied
        NotFoundError: If the participant does not exist
    """
    values = {flag: completion[flag] for flag in COMPLETION_FLAGS if completion.get(flag) is not None}
    if not values:
        raise BadRequestError("At least one completion field must be provided")

    member_id = normalize_address(member_id)
    updated = ctx.store.update(
        "quest_participant", values, {"quest_id": quest_id, "member_id": member_id}
    )
    if not updated:
        raise NotFoundError("Participant not found")
    participant = updated[0]

    if all(participant[flag] for flag in COMPLETION_FLAGS) and participant.get("rewarded_at") is None:
        participant = complete_quest(ctx, participant)

    return participant


def complete_quest(ctx: GovernanceContext, participant: Dict[str, Any]) -> Dict[str, Any]:
    """Dispatch the quest's merit reward at most once per participant."""
    quest_id = participant["quest_id"]
    member_id = participant["member_id"]

    quest = get_quest(ctx, quest_id)
    if quest is None:
        raise NotFoundError("Quest not found")

    if ctx.rewards is None:
        logger.warning("Reward dispatcher not configured; quest %s reward for %s deferred", quest_id, member_id)
        return participant

    key = {"quest_id": quest_id, "member_id": member_id}
    claimed = ctx.store.update("quest_participant", {"rewarded_at": ctx.clock()}, {**key, "rewarded_at": None})
    if not claimed:
        logger.info("Quest %s reward for %s already claimed", quest_id, member_id)
        return participant

    try:
        ctx.rewards.distribute_merits(
            f"{quest_id}::{member_id}::{ctx.timestamp_ms()}",
            "Quest completion reward",
            [{"address": member_id, "amount": str(quest["reward_merits"])}],
        )
    except GovernanceError as e:
        logger.error("Quest %s reward for %s failed, releasing claim: %s", quest_id, member_id, e, exc_info=True)
        released = ctx.store.update("quest_participant", {"rewarded_at": None}, key)
        return released[0] if released else participant

    # TODO: dispatch reward_token_amount of reward_token_address once the token distribution endpoint exists
    logger.info("Quest %s completed by %s, %s merits dispatched", quest_id, member_id, quest["reward_merits"])
    return claimed[0]
