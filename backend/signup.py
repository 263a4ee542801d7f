"""
Signup coordinators.

Each coordinator drives one form interaction through
IDLE -> SUBMITTING -> SUCCEEDED | FAILED, picking the backend for every
attempt and collapsing backend failures into a single user-facing message.
"""
import logging
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict

from config import WaitlistConfig
from errors import BackendUnavailable, InvalidTransition, StoreError
from mode import PersistenceMode, select_mode
from models import normalize_email, utcnow
from remote import RemoteClient
from waitlist import LocalEntryStore

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Failed to save email. Please try again."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again."
COMPLETE_SIGNUP_PATH = "/complete-signup"


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TRANSITIONS: FrozenSet[Tuple[SubmissionStatus, SubmissionStatus]] = frozenset({
    (SubmissionStatus.IDLE, SubmissionStatus.SUBMITTING),
    (SubmissionStatus.FAILED, SubmissionStatus.SUBMITTING),
    (SubmissionStatus.SUBMITTING, SubmissionStatus.SUCCEEDED),
    (SubmissionStatus.SUBMITTING, SubmissionStatus.FAILED),
    (SubmissionStatus.SUCCEEDED, SubmissionStatus.IDLE),
    (SubmissionStatus.FAILED, SubmissionStatus.IDLE),
})


class SubmissionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: SubmissionStatus = SubmissionStatus.IDLE
    email: Optional[str] = None
    error: Optional[str] = None
    next_url: Optional[str] = None


def complete_signup_url(email: str) -> str:
    return f"{COMPLETE_SIGNUP_PATH}?email={quote(email, safe='')}"


class _UpsertCoordinator:
    """Shared select-backend-then-upsert flow"""

    completed_signup = False

    def __init__(
        self,
        config: WaitlistConfig,
        local_store: LocalEntryStore,
        remote_factory: Callable[[], RemoteClient],
    ):
        self.config = config
        self.local_store = local_store
        self.remote_factory = remote_factory
        self.state = SubmissionState()

    def _transition(self, status: SubmissionStatus, **fields: Any) -> SubmissionState:
        if (self.state.status, status) not in TRANSITIONS:
            raise InvalidTransition(
                f"Cannot move from {self.state.status.value} to {status.value}"
            )
        self.state = SubmissionState(status=status, **fields)
        return self.state

    def reset(self) -> SubmissionState:
        return self._transition(SubmissionStatus.IDLE)

    def _fields(self, email: str) -> Dict[str, Any]:
        return {
            "email": email,
            "completed_signup": self.completed_signup,
            "updated_at": utcnow(),
        }

    def _success_fields(self, email: str) -> Dict[str, Any]:
        return {"email": email}

    def _run(self, email: str) -> SubmissionState:
        key = normalize_email(email)
        self._transition(SubmissionStatus.SUBMITTING, email=key)
        fields = self._fields(key)
        try:
            if select_mode(self.config) is PersistenceMode.LOCAL:
                self.local_store.upsert(fields)
            else:
                self.remote_factory().upsert(fields)
        except (BackendUnavailable, StoreError) as exc:
            logger.error("Failed to save %s: %s (%s)", key, exc, exc.detail)
            return self._transition(SubmissionStatus.FAILED, email=key, error=SAVE_FAILED_MESSAGE)
        except Exception:
            logger.exception("Unexpected error while saving %s", key)
            return self._transition(
                SubmissionStatus.FAILED, email=key, error=UNEXPECTED_ERROR_MESSAGE
            )
        logger.info("Saved waitlist email %s (completed=%s)", key, self.completed_signup)
        return self._transition(SubmissionStatus.SUCCEEDED, **self._success_fields(key))


class SignupCoordinator(_UpsertCoordinator):
    """First step: record the email with completed_signup=False"""

    def _success_fields(self, email: str) -> Dict[str, Any]:
        return {"email": email, "next_url": complete_signup_url(email)}

    def submit(self, email: str) -> SubmissionState:
        return self._run(email)


class CompletionUpdater(_UpsertCoordinator):
    """
    Later step: flag the email as completed.

    Does not need an earlier row; the upsert creates one with
    completed_signup=True when the email is new.
    """

    completed_signup = True

    def complete(self, email: str) -> SubmissionState:
        return self._run(email)
