"""Persistence adapters for the investor collection.

Every adapter honours the same contract: ``list()``, ``upsert(investor)`` and
``delete(investor_id)``, where both mutations return the full refreshed
collection. Identity is ``id`` and the last write wins; there is no
concurrency token.

- ``MemoryStore``: process-local list.
- ``JsonFileStore``: a flat JSON file, seeded with the default pipeline.
- ``SqlStore``: the ``investors`` table through SQLAlchemy.
- ``HttpStore``: a remote Fundraise API over httpx.
- ``FallbackStore``: a primary store mirrored into a local one, which
  takes over whenever the primary fails.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

import httpx
from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from fundraise.config import Settings
from fundraise.db import init_db, seed_if_empty, session_factory, session_scope
from fundraise.models import InvestorRow
from fundraise.schemas import Investor
from fundraise.seed import default_investors

log = logging.getLogger(__name__)

_INVESTOR_LIST = TypeAdapter(list[Investor])

PASSWORD_HEADER = "X-Pipeline-Password"


class InvestorStore(Protocol):
    def list(self) -> list[Investor]: ...

    def upsert(self, investor: Investor) -> list[Investor]: ...

    def delete(self, investor_id: str) -> list[Investor]: ...


def upsert_into(records: list[Investor], investor: Investor) -> list[Investor]:
    """Replace the record with the same id in place, or append it."""
    if any(r.id == investor.id for r in records):
        return [investor if r.id == investor.id else r for r in records]
    return [*records, investor]


def delete_from(records: list[Investor], investor_id: str) -> list[Investor]:
    return [r for r in records if r.id != investor_id]


def dump_investors(records: list[Investor]) -> list[dict]:
    return [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in records]


# ---------------------------------------------------------------------------
# Local adapters
# ---------------------------------------------------------------------------


class MemoryStore:
    def __init__(self, records: list[Investor] | None = None):
        self._records: list[Investor] = [r.model_copy() for r in records or []]

    def list(self) -> list[Investor]:
        return [r.model_copy() for r in self._records]

    def upsert(self, investor: Investor) -> list[Investor]:
        self._records = upsert_into(self._records, investor.model_copy())
        return self.list()

    def delete(self, investor_id: str) -> list[Investor]:
        self._records = delete_from(self._records, investor_id)
        return self.list()

    def replace_all(self, records: list[Investor]) -> None:
        self._records = [r.model_copy() for r in records]


class JsonFileStore:
    def __init__(self, path: str | Path, seed: bool = True):
        self.path = Path(path)
        self.seed = seed

    def _read(self) -> list[Investor]:
        if not self.path.exists():
            records = default_investors() if self.seed else []
            self._write(records)
            return records
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return _INVESTOR_LIST.validate_python(raw)
        except (OSError, ValueError) as exc:
            log.error("Error reading %s: %s", self.path, exc)
            return []

    def _write(self, records: list[Investor]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(dump_investors(records), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
        except OSError as exc:
            log.error("Error saving %s: %s", self.path, exc)

    def list(self) -> list[Investor]:
        return self._read()

    def upsert(self, investor: Investor) -> list[Investor]:
        records = upsert_into(self._read(), investor)
        self._write(records)
        return records

    def delete(self, investor_id: str) -> list[Investor]:
        records = delete_from(self._read(), investor_id)
        self._write(records)
        return records

    def replace_all(self, records: list[Investor]) -> None:
        self._write(records)


# ---------------------------------------------------------------------------
# Relational adapter
# ---------------------------------------------------------------------------


class SqlStore:
    def __init__(self, factory: sessionmaker[Session]):
        self._factory = factory

    @staticmethod
    def _list(session: Session) -> list[Investor]:
        rows = session.execute(
            select(InvestorRow).order_by(InvestorRow.last_update.desc(), InvestorRow.id)
        ).scalars().all()
        return [row.to_investor() for row in rows]

    def list(self) -> list[Investor]:
        with session_scope(self._factory) as session:
            return self._list(session)

    def upsert(self, investor: Investor) -> list[Investor]:
        with session_scope(self._factory) as session:
            row = session.get(InvestorRow, investor.id)
            if row is None:
                session.add(InvestorRow.from_investor(investor))
            else:
                row.apply(investor)
            session.flush()
            return self._list(session)

    def delete(self, investor_id: str) -> list[Investor]:
        with session_scope(self._factory) as session:
            row = session.get(InvestorRow, investor_id)
            if row is not None:
                session.delete(row)
                session.flush()
            return self._list(session)


# ---------------------------------------------------------------------------
# Remote adapters
# ---------------------------------------------------------------------------


class HttpStore:
    """Client for another Fundraise server's ``/api/investors`` endpoints."""

    def __init__(
        self,
        base_url: str,
        password: str = "",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        headers = {PASSWORD_HEADER: password} if password else {}
        self._client = client or httpx.Client(
            base_url=base_url.rstrip("/"), headers=headers, timeout=timeout,
        )

    def _parse(self, response: httpx.Response) -> list[Investor]:
        response.raise_for_status()
        return _INVESTOR_LIST.validate_python(response.json())

    def list(self) -> list[Investor]:
        return self._parse(self._client.get("/investors"))

    def upsert(self, investor: Investor) -> list[Investor]:
        payload = investor.model_dump(mode="json", by_alias=True)
        return self._parse(self._client.post("/investors", json=payload))

    def delete(self, investor_id: str) -> list[Investor]:
        return self._parse(self._client.delete(f"/investors/{investor_id}"))

    def close(self) -> None:
        self._client.close()


class FallbackStore:
    """Serve from *primary*, mirroring results into *local*; use *local*
    alone when the primary cannot be reached."""

    def __init__(self, primary: InvestorStore, local: MemoryStore | JsonFileStore):
        self.primary = primary
        self.local = local

    def list(self) -> list[Investor]:
        try:
            records = self.primary.list()
        except Exception as exc:
            log.warning("Primary store unreachable, serving local copy: %s", exc)
            return self.local.list()
        self.local.replace_all(records)
        return records

    def upsert(self, investor: Investor) -> list[Investor]:
        try:
            records = self.primary.upsert(investor)
        except Exception as exc:
            log.warning("Primary store unreachable, saving locally: %s", exc)
            return self.local.upsert(investor)
        self.local.replace_all(records)
        return records

    def delete(self, investor_id: str) -> list[Investor]:
        try:
            records = self.primary.delete(investor_id)
        except Exception as exc:
            log.warning("Primary store unreachable, deleting locally: %s", exc)
            return self.local.delete(investor_id)
        self.local.replace_all(records)
        return records

    def close(self) -> None:
        close_store(self.primary)


def build_store(settings: Settings) -> InvestorStore:
    """Construct the adapter selected by ``settings.store``."""
    if settings.store == "memory":
        return MemoryStore(default_investors())
    settings.ensure_directories()
    if settings.store == "json":
        return JsonFileStore(settings.json_path)
    if settings.store == "http":
        remote = HttpStore(
            settings.remote_url, password=settings.password,
            timeout=settings.request_timeout_seconds,
        )
        return FallbackStore(remote, JsonFileStore(settings.data_dir / "local_cache.json"))
    init_db(settings.database_url)
    with session_scope() as session:
        seed_if_empty(session)
    return SqlStore(session_factory())


def close_store(store: InvestorStore) -> None:
    """Release whatever connections *store* holds open."""
    close = getattr(store, "close", None)
    if close is not None:
        close()
