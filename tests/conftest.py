"""Test configuration and fixtures."""

from types import SimpleNamespace
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from geoip2.errors import AddressNotFoundError
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pig_gallery import models  # noqa: F401
from pig_gallery.config import Settings, get_settings
from pig_gallery.db import Base, get_db
from pig_gallery.geo import GeoResolver
from pig_gallery.main import app, get_clock, get_geo_resolver

ADMIN_TOKEN = "test-admin-token"
PNG_DATA_URI = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk"
START_MS = 1_700_000_000_000
TEN_MINUTES_MS = 10 * 60 * 1000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeGeoReader:
    """Stands in for geoip2.database.Reader with a fixed table of records."""

    def __init__(self, records):
        self.records = records

    def city(self, ip: str):
        if ip not in self.records:
            raise AddressNotFoundError(f"The address {ip} is not in the database.")
        country, city = self.records[ip]
        return SimpleNamespace(
            country=SimpleNamespace(iso_code=country),
            city=SimpleNamespace(name=city),
        )

    def close(self) -> None:
        pass


GEO_RECORDS = {
    "8.8.8.8": ("US", "Mountain View"),
    "1.1.1.1": ("AU", None),
    "9.9.9.9": ("ZZ", "  "),
    "133.1.1.1": ("JP", "Tokyo"),
}


@pytest.fixture
def engine():
    """In-memory SQLite engine with a fresh schema per test."""
    test_engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def geo_resolver() -> GeoResolver:
    return GeoResolver(reader=FakeGeoReader(GEO_RECORDS))


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        admin_token=ADMIN_TOKEN,
        geoip_database_path=None,
        gemini_api_key=None,
        static_dir=None,
        trust_proxy_headers=True,
    )


@pytest.fixture
def client(session_factory, clock, geo_resolver, test_settings) -> Generator[TestClient, None, None]:
    """TestClient wired to the in-memory database, fake clock and fake geo data."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_geo_resolver] = lambda: geo_resolver
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
