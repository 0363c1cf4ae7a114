"""Governance constants shared by the proposal, vote and quest services."""
from enum import Enum


class House(str, Enum):
    HOUSE_1 = "1"
    HOUSE_2 = "2"
    HOUSE_3 = "3"
    HOUSE_4 = "4"


class VoteType(str, Enum):
    YES = "YES"
    NO = "NO"
    ABSTAIN = "ABSTAIN"


STARTING_REPUTATION = 10

# Binding votes always weigh the same; the client never supplies a weight.
BINDING_VOTE_WEIGHT = 100
FEEDBACK_VOTE_WEIGHT = 1

MERITS_PER_PROPOSAL = 50

CORRECT_VOTE_REPUTATION_CHANGE = 10
INCORRECT_VOTE_REPUTATION_CHANGE = -10
ABSTAIN_REPUTATION_CHANGE = 0

EVM_ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"
UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
