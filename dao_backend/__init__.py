"""
DAO governance backend.

Members join DAOs, submit proposals, vote across houses and settle
outcomes with reputation and merit payouts.
"""

__all__ = [
]
