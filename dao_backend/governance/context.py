from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from dao_backend.services.archive import ProposalArchive
from dao_backend.services.rewards import RewardDispatcher
from dao_backend.services.store import TableStore


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class GovernanceContext:
    """Collaborators shared by the governance services for one process."""

    store: TableStore
    rewards: Optional[RewardDispatcher] = None
    archive: Optional[ProposalArchive] = None
    clock: Callable[[], datetime] = field(default=utc_now)

    def timestamp_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    def close(self) -> None:
        if self.archive is not None:
            self.archive.close()
        if self.rewards is not None:
            self.rewards.close()
        self.store.close()
