# flipwatch/services/company_cache.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import insert as sa_insert, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.normalization import (
    company_key,
    normalize_company_name_for_comparison,
    normalize_company_name_for_storage,
)
from ..models import Company

log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.utcnow()


def storage_name_for_key(key: str) -> Optional[str]:
    """
    Canonical companies.company_name for a comparison key. Every spelling that
    shares a key maps to the same stored name, so the unique constraint dedupes them.
    """
    return normalize_company_name_for_storage(key)


def _parse_counties(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, list):
        return [str(c) for c in value if c]
    return []


def _insert_ignore_stmt(db: Session, rows: list[dict]):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as pg_insert

        return pg_insert(Company).values(rows).on_conflict_do_nothing(index_elements=["company_name"])
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert

        return sqlite_insert(Company).values(rows).on_conflict_do_nothing(index_elements=["company_name"])
    return None


class CompanyCache:
    """
    Run-scoped map of comparison key -> Company.

    Loaded eagerly from the companies table when the run starts and never
    shared between runs. Entries resolved since the last commit are dropped on
    rollback so the cache never points at rows that were never persisted.
    """

    def __init__(self, db: Session, *, market_code: Optional[str] = None) -> None:
        self.db = db
        self.market_code = market_code
        self._by_key: dict[str, Company] = {}
        self._uncommitted: set[str] = set()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def load(self) -> int:
        self._by_key.clear()
        self._uncommitted.clear()
        for company in self.db.scalars(select(Company)).all():
            key = normalize_company_name_for_comparison(company.company_name)
            if key:
                self._by_key[key] = company
        log.info(
            "[%s SYNC] Loaded %d companies into cache",
            self.market_code,
            len(self._by_key),
            extra={"market_code": self.market_code},
        )
        return len(self._by_key)

    def commit(self) -> None:
        self.db.commit()
        self._uncommitted.clear()

    def rollback(self) -> None:
        self.db.rollback()
        for key in self._uncommitted:
            self._by_key.pop(key, None)
        self._uncommitted.clear()

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, key: str) -> bool:
        return key in self._by_key

    def _remember(self, key: str, company: Company) -> None:
        if key not in self._by_key:
            self._uncommitted.add(key)
        self._by_key[key] = company

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------
    def get(self, key: Optional[str]) -> Optional[Company]:
        return self._by_key.get(key) if key else None

    def id_for(self, raw_name: Optional[str]) -> Optional[int]:
        c = self.get(company_key(raw_name))
        return c.id if c is not None else None

    def find_and_cache(
        self,
        storage_name: str,
        key: str,
        counties: Optional[Iterable[str]] = None,
    ) -> Optional[Company]:
        company = self.db.scalar(select(Company).where(Company.company_name == storage_name).limit(1))
        if company is None:
            return None
        self._remember(key, company)
        if counties:
            self.add_counties(company, counties)
        return company

    def resolve(self, raw_name: Optional[str]) -> Optional[Company]:
        """Cache first, then the table by canonical name. Never creates."""
        key = company_key(raw_name)
        if not key:
            return None
        hit = self._by_key.get(key)
        if hit is not None:
            return hit
        storage = storage_name_for_key(key)
        return self.find_and_cache(storage, key) if storage else None

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def add_counties(self, company: Company, counties: Iterable[str]) -> bool:
        """Union new counties into company.counties (case-insensitive). Writes only when something is new."""
        current = _parse_counties(company.counties)
        seen = {c.lower() for c in current}

        added: list[str] = []
        for c in counties:
            if c and c.lower() not in seen:
                seen.add(c.lower())
                added.append(c)

        if not added:
            return False

        company.counties = current + added
        company.updated_at = _now()
        self.db.add(company)
        self.db.flush()
        return True

    def resolve_many(self, wanted: dict[str, set[str]]) -> dict[str, Company]:
        """
        Resolve every comparison key in `wanted` (key -> counties observed this batch),
        creating companies that do not exist yet.

        New names go in as one insert-or-ignore on company_name; every staged name
        is then re-read so concurrent inserts from another run are picked up too.
        """
        staged: list[tuple[str, str, list[str]]] = []  # (key, storage name, counties)

        for key, counties in wanted.items():
            existing = self._by_key.get(key)
            if existing is not None:
                self.add_counties(existing, counties)
                continue

            storage = storage_name_for_key(key)
            if not storage:
                continue
            if self.find_and_cache(storage, key, counties) is not None:
                continue
            if not any(s[0] == key for s in staged):
                staged.append((key, storage, sorted(counties)))

        if staged:
            self._insert_staged(staged)

        return {k: self._by_key[k] for k in wanted if k in self._by_key}

    def resolve_or_create(self, raw_name: Optional[str], county: Optional[str] = None) -> Optional[Company]:
        key = company_key(raw_name)
        if not key:
            return None
        return self.resolve_many({key: {county} if county else set()}).get(key)

    def _insert_staged(self, staged: list[tuple[str, str, list[str]]]) -> None:
        now = _now()
        rows = [
            {
                "company_name": storage,
                "contact_name": None,
                "contact_email": None,
                "phone_number": None,
                "counties": counties,
                "created_at": now,
                "updated_at": now,
            }
            for _, storage, counties in staged
        ]

        try:
            with self.db.begin_nested():
                stmt = _insert_ignore_stmt(self.db, rows)
                if stmt is not None:
                    self.db.execute(stmt)
                else:
                    for row in rows:
                        try:
                            with self.db.begin_nested():
                                self.db.execute(sa_insert(Company).values(**row))
                        except IntegrityError:
                            pass  # already there
        except OperationalError:
            raise
        except SQLAlchemyError:
            log.exception(
                "[%s SYNC] Error inserting companies",
                self.market_code,
                extra={"market_code": self.market_code},
            )

        created = 0
        for key, storage, counties in staged:
            if key in self._by_key:
                continue
            if self.find_and_cache(storage, key, counties) is not None:
                created += 1
            else:
                log.warning(
                    "[%s SYNC] Company %r could not be resolved after insert",
                    self.market_code,
                    storage,
                    extra={"market_code": self.market_code},
                )

        log.info(
            "[%s SYNC] Processed %d staged companies (%d resolved)",
            self.market_code,
            len(staged),
            created,
            extra={"market_code": self.market_code},
        )
