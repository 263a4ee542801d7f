"""
Process configuration for the waitlist service.

Read once at startup; the resulting WaitlistConfig is passed to everything
that needs it instead of reaching back into the environment.
"""
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


DEFAULT_STORAGE_DIR = Path(__file__).parent / "data"

# Values shipped in .env.example and build-time defaults for environments
# with no real backend configured.
PLACEHOLDER_URL = "https://placeholder.supabase.co"
PLACEHOLDER_KEY = "placeholder-key"


def get_env(key: str, default: str = "") -> str:
    return os.getenv(key, default).strip()


@dataclass(frozen=True)
class WaitlistConfig:
    remote_url: str = PLACEHOLDER_URL
    remote_key: str = PLACEHOLDER_KEY
    table: str = "waitlist"
    storage_dir: Path = DEFAULT_STORAGE_DIR
    log_level: str = "INFO"


def load_config() -> WaitlistConfig:
    load_dotenv()
    return WaitlistConfig(
        remote_url=get_env("WAITLIST_REMOTE_URL", PLACEHOLDER_URL),
        remote_key=get_env("WAITLIST_REMOTE_KEY", PLACEHOLDER_KEY),
        table=get_env("WAITLIST_TABLE", "waitlist") or "waitlist",
        storage_dir=Path(get_env("WAITLIST_STORAGE_DIR", str(DEFAULT_STORAGE_DIR))),
        log_level=get_env("LOG_LEVEL", "INFO").upper() or "INFO",
    )
