"""
Remote waitlist backends.

Both clients upsert keyed on ``email`` and update every supplied field on
conflict. Any failure surfaces as BackendUnavailable with the backend's
own message kept in ``detail``.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

import httpx
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from config import WaitlistConfig
from db.models import WaitlistRow, get_engine
from errors import BackendUnavailable

logger = logging.getLogger(__name__)

CONFLICT_KEY = "email"
INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class RemoteClient(Protocol):
    def upsert(self, fields: Dict[str, Any]) -> None:
        ...


def _jsonable(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v.isoformat() if isinstance(v, datetime) else v for k, v in fields.items()}


class RestWaitlistClient:
    """PostgREST (Supabase-style) table endpoint"""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = "waitlist",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.table = table
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Prefer": "resolution=merge-duplicates,return=representation",
            },
            transport=transport,
        )

    def upsert(self, fields: Dict[str, Any]) -> None:
        try:
            response = self._client.post(
                f"/rest/v1/{self.table}",
                params={"on_conflict": CONFLICT_KEY},
                json=[_jsonable(fields)],
            )
        except httpx.HTTPError as exc:
            raise BackendUnavailable("Remote backend unreachable", detail=str(exc)) from exc
        if response.is_error:
            raise BackendUnavailable(
                "Remote upsert rejected",
                detail=f"{response.status_code}: {response.text}",
            )

    def close(self) -> None:
        self._client.close()


class SqlWaitlistClient:
    """Direct SQL connection using INSERT ... ON CONFLICT DO UPDATE"""

    def __init__(self, engine: Engine):
        self.engine = engine
        dialect = engine.dialect.name
        if dialect not in INSERT_BY_DIALECT:
            raise ValueError(f"Unsupported dialect for upsert: {dialect}")
        self._insert = INSERT_BY_DIALECT[dialect]

    def upsert(self, fields: Dict[str, Any]) -> None:
        table = WaitlistRow.__table__
        stmt = self._insert(table).values(**fields)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c[CONFLICT_KEY]],
            set_={k: stmt.excluded[k] for k in fields if k != CONFLICT_KEY},
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise BackendUnavailable("Remote upsert failed", detail=str(exc)) from exc

    def close(self) -> None:
        self.engine.dispose()


def make_remote_client(config: WaitlistConfig) -> RemoteClient:
    """Pick the client for the configured endpoint's scheme."""
    if config.remote_url.startswith(("http://", "https://")):
        return RestWaitlistClient(config.remote_url, config.remote_key, table=config.table)
    return SqlWaitlistClient(get_engine(config.remote_url, config.remote_key))
