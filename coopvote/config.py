# coopvote/config.py
# Central place for settings and constants
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

# Load environment variables from the project root .env, if present
load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "../.env"))

# Candidate approval state that makes a candidate selectable and tallied
APPROVED_CANDIDATE_STATUS = "approved"

# Sentinel branch for voters without a branch assignment
UNASSIGNED_BRANCH_ID = "unassigned"
UNASSIGNED_BRANCH_NAME = "Unassigned"

# Size of the opaque per-vote receipt token (bytes of entropy)
VOTE_TOKEN_BYTES = 24


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


@dataclass
class Settings:
    mongo_uri: str = field(default_factory=lambda: os.getenv("MONGO_URI", "mongodb://localhost:27017"))
    mongo_db: str = field(default_factory=lambda: os.getenv("MONGO_DB", "coopvote"))

    # In production, use secure, environment-variable-based secrets
    secret_key: str = field(default_factory=lambda: os.getenv("SECRET_KEY", "a_very_secret_key_for_dev_only"))
    algorithm: str = field(default_factory=lambda: os.getenv("ALGORITHM", "HS256"))
    access_token_expire_minutes: int = field(
        default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
    )

    # Multi-document transactions need a replica set or sharded cluster
    use_transactions: bool = field(default_factory=lambda: _env_bool("COOPVOTE_USE_TRANSACTIONS", True))

    cors_origins: List[str] = field(
        default_factory=lambda: _env_list("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


def get_settings() -> Settings:
    return Settings()
