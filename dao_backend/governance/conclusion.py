"""
Conclusion engine.

Each proposal phase moves once from OPEN to CONCLUDED. Concluding tallies
the phase's votes by weight and writes the result with a compare-and-set
update, so two racing callers cannot both conclude the same phase.

The feedback phase also settles rewards: voters on the winning side receive
merits through the reward dispatcher, and every YES/NO voter's reputation
moves up or down. Those side effects run after the conclusion is committed
and their failures are logged, never propagated.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from dao_backend.exceptions import BadRequestError, ConflictError, GovernanceError, NotFoundError
from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.memberships import ReputationChange, change_reputation
from dao_backend.governance.proposals import get_proposal
from dao_backend.governance.votes import get_votes_for_proposal
from dao_backend.services.rewards import MeritDistribution
from dao_backend.utils.constants import (
    ABSTAIN_REPUTATION_CHANGE,
    CORRECT_VOTE_REPUTATION_CHANGE,
    INCORRECT_VOTE_REPUTATION_CHANGE,
    MERITS_PER_PROPOSAL,
    VoteType,
)
from dao_backend.utils.logger import logger


@dataclass(frozen=True)
class Phase:
    conclusion_field: str
    end_field: str
    already_concluded: str
    not_ended: str


BINDING = Phase(
    conclusion_field="conclusion",
    end_field="voting_end",
    already_concluded="Proposal has already been concluded",
    not_ended="Voting has not ended yet",
)
FEEDBACK = Phase(
    conclusion_field="feedback_conclusion",
    end_field="feedback_end",
    already_concluded="Proposal's feedback has already been concluded",
    not_ended="Feedback has not ended yet",
)


@dataclass(frozen=True)
class Tally:
    weighted_yes: int
    weighted_no: int

    @property
    def result(self) -> VoteType:
        # Ties go to NO; there is no quorum.
        return VoteType.YES if self.weighted_yes > self.weighted_no else VoteType.NO


def tally_votes(votes: List[Dict[str, Any]]) -> Tally:
    weighted_yes = 0
    weighted_no = 0
    for vote in votes:
        if vote["vote"] == VoteType.YES.value:
            weighted_yes += vote["weight"]
        elif vote["vote"] == VoteType.NO.value:
            weighted_no += vote["weight"]
    return Tally(weighted_yes=weighted_yes, weighted_no=weighted_no)


def conclude_proposal(
    ctx: GovernanceContext,
    proposal_id: str,
    is_feedback: bool,
) -> Union[Dict[str, Any], Dict[str, Optional[Dict[str, Any]]]]:
    """
    Conclude one phase of a proposal.

    Returns:
        The updated proposal for the binding phase, or
        ``{"merits": receipt or None, "proposal": updated}`` for feedback

    Raises:
        NotFoundError: If the proposal does not exist
        ConflictError: If the phase is already concluded
        BadRequestError: If the phase's end time has not passed
    """
    phase = FEEDBACK if is_feedback else BINDING

    proposal = get_proposal(ctx, proposal_id)
    if proposal is None:
        raise NotFoundError("Proposal not found")

    if proposal[phase.conclusion_field] is not None:
        raise ConflictError(phase.already_concluded)

    if ctx.clock() < proposal[phase.end_field]:
        raise BadRequestError(phase.not_ended)

    house = None if is_feedback else proposal["voting_house"]
    votes = get_votes_for_proposal(ctx, proposal_id, is_feedback, house)
    tally = tally_votes(votes)
    result = tally.result

    updated = ctx.store.update(
        "proposals",
        {phase.conclusion_field: result.value},
        {"proposal_id": proposal_id, phase.conclusion_field: None},
    )
    if not updated:
        logger.warning("Proposal %s %s was concluded concurrently", proposal_id, phase.conclusion_field)
        raise ConflictError(phase.already_concluded)
    concluded = updated[0]

    logger.info(
        "Proposal %s %s = %s (yes=%d, no=%d, votes=%d)",
        proposal_id, phase.conclusion_field, result.value,
        tally.weighted_yes, tally.weighted_no, len(votes),
    )

    if ctx.archive is not None:
        ctx.archive.update_proposal(proposal_id, concluded)

    if not is_feedback:
        return concluded

    merits = settle_feedback(ctx, concluded, votes, result)
    return {"merits": merits, "proposal": concluded}


def settle_feedback(
    ctx: GovernanceContext,
    proposal: Dict[str, Any],
    votes: List[Dict[str, Any]],
    result: VoteType,
) -> Optional[Dict[str, Any]]:
    """Distribute merits to the winning side and move reputation for everyone who picked a side."""
    losing = VoteType.NO if result == VoteType.YES else VoteType.YES
    winners = [vote for vote in votes if vote["vote"] == result.value]
    dao_id = proposal["dao_id"]
    proposal_id = proposal["proposal_id"]

    merits = None
    if not winners:
        logger.info("Proposal %s has no winning feedback voters; no merits to distribute", proposal_id)
    elif ctx.rewards is None:
        logger.warning("Reward dispatcher not configured; skipping merits for proposal %s", proposal_id)
    else:
        distributions: List[MeritDistribution] = [
            {"address": vote["member_id"], "amount": str(MERITS_PER_PROPOSAL)} for vote in winners
        ]
        try:
            merits = ctx.rewards.distribute_merits(
                f"{dao_id}::{proposal_id}::{ctx.timestamp_ms()}",
                "Feedback distribution",
                distributions,
            )
        except GovernanceError as e:
            logger.error("Merit distribution for proposal %s failed: %s", proposal_id, e, exc_info=True)

    deltas = {
        result.value: CORRECT_VOTE_REPUTATION_CHANGE,
        losing.value: INCORRECT_VOTE_REPUTATION_CHANGE,
        VoteType.ABSTAIN.value: ABSTAIN_REPUTATION_CHANGE,
    }
    changes = [
        ReputationChange(member_id=vote["member_id"], dao_id=dao_id, change=deltas[vote["vote"]])
        for vote in votes
    ]
    if changes:
        try:
            change_reputation(ctx, changes)
        except GovernanceError as e:
            logger.error("Reputation update for proposal %s failed: %s", proposal_id, e, exc_info=True)

    return merits
