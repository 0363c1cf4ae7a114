"""
Governance domain services.

Each module owns one part of the lifecycle: member registry, DAO registry,
membership ledger, proposal store, vote ledger, conclusion engine, quests
and proposal discussion. Every operation takes the ``GovernanceContext``
built at process start.
"""
from dao_backend.governance.context import GovernanceContext

__all__ = ["GovernanceContext"]
