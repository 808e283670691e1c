import sys
from pathlib import Path

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db import init_db
from repositories import PlaceCacheRepository
from services.resolver import MediaResolver
from settings import Settings


@pytest.fixture
def settings():
    s = Settings()
    s.CONFIRM_THRESHOLD = 0.75
    s.CATEGORY_BONUS = 0.1
    s.RATING_BONUS = 0.1
    s.RATING_BONUS_FLOOR = 4.0
    s.MAX_SEARCH_CANDIDATES = 3
    s.MAX_RESULTS = 3
    s.MAX_WORKERS = 5
    s.PLACE_CACHE_ENABLED = True
    s.PLACE_CACHE_TTL_SECONDS = 3600
    return s


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def make_resolver(session_factory, settings):
    def _make(extractor, places, with_cache=True):
        return MediaResolver(
            text_extractor=extractor,
            places_client=places,
            session_factory=session_factory,
            settings=settings,
            cache_repo=PlaceCacheRepository(ttl_seconds=settings.PLACE_CACHE_TTL_SECONDS)
            if with_cache
            else None,
        )

    return _make
