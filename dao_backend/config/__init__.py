from dao_backend.config.database_config import DatabaseConfig
from dao_backend.config.settings import Settings

__all__ = ["DatabaseConfig", "Settings"]
