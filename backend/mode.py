"""
Persistence mode selection.

The remote backend is used only when both the endpoint and the access key
are set to something other than a known placeholder.
"""
import logging
from enum import Enum

from config import PLACEHOLDER_KEY, PLACEHOLDER_URL, WaitlistConfig

logger = logging.getLogger(__name__)

PLACEHOLDER_URLS = frozenset({
    "",
    PLACEHOLDER_URL,
    "your-project-url",
    "your_supabase_url",
})
PLACEHOLDER_KEYS = frozenset({
    "",
    PLACEHOLDER_KEY,
    "your-anon-key",
    "your_supabase_anon_key",
})


class PersistenceMode(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


def is_remote_usable(config: WaitlistConfig) -> bool:
    url = (config.remote_url or "").strip()
    key = (config.remote_key or "").strip()
    return url not in PLACEHOLDER_URLS and key not in PLACEHOLDER_KEYS


def select_mode(config: WaitlistConfig) -> PersistenceMode:
    mode = PersistenceMode.REMOTE if is_remote_usable(config) else PersistenceMode.LOCAL
    logger.debug("Persistence mode: %s", mode.value)
    return mode
