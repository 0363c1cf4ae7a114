"""
Process configuration.

Everything the service needs from the environment is read once by
``Settings.from_env()`` and passed explicitly to the components that use it.
"""
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import load_dotenv

DEFAULT_ARCHIVE_BUCKET = "eth-prague-proposal-storage"


@dataclass(frozen=True)
class RewardSettings:
    base_url: str
    api_key: str
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class ArchiveSettings:
    base_url: str
    access_key: str
    secret_key: str
    bucket: str = DEFAULT_ARCHIVE_BUCKET
    region: str = "us-east-1"


@dataclass(frozen=True)
class Settings:
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    port: int = 8080
    environment: str = "development"
    rewards: Optional[RewardSettings] = None
    archive: Optional[ArchiveSettings] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        if environ is None:
            load_dotenv()  # Load environment variables from .env file
            environ = os.environ

        origins_env = environ.get("ALLOWED_ORIGINS", "*")
        allowed_origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]

        rewards = None
        if environ.get("BLOCKSCOUT_MERITS_BASE_URL") and environ.get("BLOCKSCOUT_API_KEY"):
            rewards = RewardSettings(
                base_url=environ["BLOCKSCOUT_MERITS_BASE_URL"],
                api_key=environ["BLOCKSCOUT_API_KEY"],
                timeout_seconds=float(environ.get("BLOCKSCOUT_TIMEOUT_SECONDS", "30")),
            )

        archive = None
        if environ.get("AKAVE_BASE_URL") and environ.get("AKAVE_KEY_ID") and environ.get("AKAVE_SECRET_KEY"):
            archive = ArchiveSettings(
                base_url=environ["AKAVE_BASE_URL"],
                access_key=environ["AKAVE_KEY_ID"],
                secret_key=environ["AKAVE_SECRET_KEY"],
                bucket=environ.get("AKAVE_BUCKET", DEFAULT_ARCHIVE_BUCKET),
                region=environ.get("AKAVE_REGION", "us-east-1"),
            )

        return cls(
            allowed_origins=allowed_origins or ["*"],
            port=int(environ.get("PORT", "8080")),
            environment=environ.get("ENV_TYPE", "development"),
            rewards=rewards,
            archive=archive,
        )
