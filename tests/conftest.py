from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import insert
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from listing_engine.db import Base, ListingStore, make_engine
from listing_engine.models import Listing

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

DEFAULT_ROW = {
    "title": "Test Car",
    "vehicle_type": "sedan",
    "transmission": "automatic",
    "fuel_type": "petrol",
    "country_code": "CA",
    "city": "Toronto",
    "currency": "CAD",
    "price_per_day": 30,
    "status": "active",
}


@pytest.fixture(autouse=True)
def no_media_env(monkeypatch):
    monkeypatch.delenv("MEDIA_PUBLIC_BASE_URL", raising=False)
    monkeypatch.delenv("MEDIA_PLACEHOLDER_URL", raising=False)


@pytest.fixture
def engine():
    # in-memory SQLite shared by every session of one test
    eng = make_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return ListingStore(db)


@pytest.fixture
def add_listing(db):
    counter = {"n": 0}

    def _add(**values):
        counter["n"] += 1
        data = dict(DEFAULT_ROW)
        data["created_at"] = BASE_TIME + timedelta(minutes=counter["n"])
        data.update(values)
        res = db.execute(insert(Listing.__table__).values(**data))
        db.commit()
        return res.inserted_primary_key[0]

    return _add
