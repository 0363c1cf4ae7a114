"""
Request bodies for the governance API.

Shape and format checks live here; rules that depend on stored state or on
the current time are enforced by the governance services.
"""
from typing import Annotated, Dict, List, Optional

from pydantic import AnyUrl, AwareDatetime, BaseModel, Field, StringConstraints

from dao_backend.utils.constants import EVM_ADDRESS_PATTERN, UUID_PATTERN, House, VoteType

EvmAddress = Annotated[str, StringConstraints(strip_whitespace=True, pattern=EVM_ADDRESS_PATTERN)]
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]
NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
UUIDStr = Annotated[str, StringConstraints(strip_whitespace=True, pattern=UUID_PATTERN)]


class TokenRef(BaseModel):
    token_address: EvmAddress
    chain_id: int


class Socials(BaseModel):
    twitter: Optional[AnyUrl] = None
    telegram: Optional[AnyUrl] = None
    discord: Optional[AnyUrl] = None
    website: Optional[AnyUrl] = None

    def as_strings(self) -> Dict[str, Optional[str]]:
        return {name: str(value) if value else None for name, value in self}


class CreateDaoBody(BaseModel):
    name: TrimmedStr
    description: TrimmedStr
    logo: TrimmedStr
    owner_address: EvmAddress
    tokens: List[TokenRef]
    socials: Socials
    tags: List[TrimmedStr] = Field(default_factory=list)


class JoinDaoBody(BaseModel):
    dao_id: UUIDStr
    wallet_address: EvmAddress


class GetMembershipsBody(BaseModel):
    wallet_address: EvmAddress


class CreateProposalBody(BaseModel):
    title: TrimmedStr
    description: TrimmedStr
    dao_id: Optional[UUIDStr] = None
    voting_start: AwareDatetime
    voting_end: AwareDatetime
    feedback_end: AwareDatetime


class ConcludeProposalBody(BaseModel):
    proposal_id: UUIDStr
    is_feedback: bool


class CastVoteBody(BaseModel):
    """Vote payload. Any client-sent weight is ignored; weight is fixed by phase."""

    proposal_id: UUIDStr
    wallet_address: EvmAddress
    vote: VoteType
    is_feedback: bool


class GetVotesBody(BaseModel):
    proposal_id: UUIDStr
    is_feedback: bool
    house: Optional[House] = None


class CreateQuestBody(BaseModel):
    dao_id: UUIDStr
    start_time: AwareDatetime
    end_time: AwareDatetime
    title: NonEmptyStr
    description: NonEmptyStr
    reward_merits: int = Field(gt=0)
    reward_token_chain: Optional[int] = None
    reward_token_address: Optional[EvmAddress] = None
    reward_token_amount: Optional[float] = Field(default=None, gt=0)
    twitter_account_url: Optional[AnyUrl] = None
    twitter_post_url: Optional[AnyUrl] = None
    twitter_follow_enabled: bool
    twitter_like_enabled: bool
    twitter_retweet_enabled: bool


class JoinQuestBody(BaseModel):
    member_id: EvmAddress
    quest_id: UUIDStr


class UpdateParticipantCompletionBody(BaseModel):
    twitter_follow_completed: Optional[bool] = None
    twitter_like_completed: Optional[bool] = None
    twitter_retweet_completed: Optional[bool] = None


class CreateMessageBody(BaseModel):
    member_id: EvmAddress
    proposal_id: UUIDStr
    message: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)]


class MessageHistoryBody(BaseModel):
    proposal_id: UUIDStr
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
