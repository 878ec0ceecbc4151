# tests/test_company_cache.py
from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.sql.dml import Insert

from flipwatch.domain.normalization import company_key
from flipwatch.models import Company
from flipwatch.services.company_cache import CompanyCache


def _count(db) -> int:
    return db.scalar(select(func.count()).select_from(Company))


def test_names_differing_in_punctuation_resolve_to_one_company(db):
    cache = CompanyCache(db, market_code="SD")
    cache.load()

    first = cache.resolve_or_create("Grandfield Properties, LLC.", "San Diego")
    cache.commit()
    assert first is not None
    assert first.company_name == "Grandfield Properties LLC"

    # a fresh run loads the table and maps other spellings to the same row
    cache2 = CompanyCache(db, market_code="SD")
    assert cache2.load() == 1
    assert cache2.resolve("GRANDFIELD  PROPERTIES LLC").id == first.id
    assert cache2.resolve_or_create("grandfield properties llc;", "Orange").id == first.id
    cache2.commit()

    assert _count(db) == 1


def test_resolve_never_creates(db):
    cache = CompanyCache(db)
    cache.load()
    assert cache.resolve("Nobody Holdings LLC") is None
    assert _count(db) == 0


def test_add_counties_only_persists_new_ones(db):
    db.add(Company(company_name="Acme Holdings LLC", counties=["San Diego"]))
    db.commit()

    cache = CompanyCache(db)
    cache.load()
    acme = cache.resolve("ACME HOLDINGS, LLC")

    assert cache.add_counties(acme, {"san diego"}) is False
    assert cache.add_counties(acme, ["SAN DIEGO", "Orange"]) is True
    cache.commit()

    db.expire_all()
    assert db.get(Company, acme.id).counties == ["San Diego", "Orange"]


def test_resolve_many_picks_up_existing_rows_and_creates_missing(db):
    db.add(Company(company_name="Acme Holdings LLC", counties=["Denver"]))
    db.commit()

    cache = CompanyCache(db)  # deliberately not loaded: existing row must be found by name
    wanted = {
        company_key("ACME HOLDINGS LLC"): {"Denver", "Adams"},
        company_key("Blue Capital Partners"): {"Denver"},
    }
    got = cache.resolve_many(wanted)
    cache.commit()

    assert set(got) == set(wanted)
    assert _count(db) == 2
    assert sorted(got[company_key("ACME HOLDINGS LLC")].counties) == ["Adams", "Denver"]
    assert got[company_key("Blue Capital Partners")].company_name == "Blue Capital Partners"


def test_insert_conflict_is_ignored_and_row_reread(db):
    db.add(Company(company_name="Acme Holdings LLC", counties=[]))
    db.commit()

    cache = CompanyCache(db)
    key = company_key("Acme Holdings LLC")
    # another run inserted the name after our lookup
    cache._insert_staged([(key, "Acme Holdings LLC", ["Denver"])])
    cache.commit()

    assert _count(db) == 1
    assert key in cache
    assert cache.get(key).company_name == "Acme Holdings LLC"


def test_rollback_forgets_uncommitted_entries(db):
    cache = CompanyCache(db)
    cache.load()

    cache.resolve_or_create("NEW CO LLC", "Denver")
    assert company_key("NEW CO LLC") in cache

    cache.rollback()
    assert company_key("NEW CO LLC") not in cache


def _fail_inserts(db, monkeypatch, error):
    real_execute = db.execute

    def execute(statement, *args, **kwargs):
        if isinstance(statement, Insert):
            raise error
        return real_execute(statement, *args, **kwargs)

    monkeypatch.setattr(db, "execute", execute)


def test_failed_insert_falls_back_to_lookup(db, monkeypatch):
    db.add(Company(company_name="Acme Holdings LLC", counties=[]))
    db.commit()

    cache = CompanyCache(db, market_code="SD")
    acme = company_key("Acme Holdings LLC")
    new = company_key("New Co LLC")
    _fail_inserts(db, monkeypatch, SQLAlchemyError("disk full"))

    cache._insert_staged([(acme, "Acme Holdings LLC", ["Denver"]), (new, "New Co LLC", [])])

    assert acme in cache
    assert cache.get(acme).company_name == "Acme Holdings LLC"
    assert new not in cache


def test_lost_connection_during_insert_is_raised(db, monkeypatch):
    cache = CompanyCache(db, market_code="SD")
    _fail_inserts(db, monkeypatch, OperationalError("INSERT", {}, Exception("database is locked")))

    with pytest.raises(OperationalError):
        cache._insert_staged([(company_key("New Co LLC"), "New Co LLC", [])])
