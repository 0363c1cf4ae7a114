import random

from dao_backend.utils.constants import House

_random = random.SystemRandom()


def assign_house() -> House:
    """Pick one of the four voting houses uniformly at random."""
    return _random.choice(list(House))
