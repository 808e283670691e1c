from datetime import datetime, timedelta

from domain.models import CacheEntry
from repositories import PlaceCacheRepository
from repositories.models import PlaceCacheORM
from repositories.place_cache import normalize_query


def _entry(query="joe's pizza", place_id="pid-1", country=None, city=None, score=1.0):
    return CacheEntry(
        normalized_query=query,
        place_id=place_id,
        name="Joe's Pizza",
        address="7 Carmine St",
        lat=40.73,
        lng=-74.0,
        score=score,
        country=country,
        city=city,
    )


def test_normalize_query():
    assert normalize_query("  Joe's   PIZZA ") == "joe's pizza"
    assert normalize_query("") == ""


def test_put_then_get_round_trips_key(session_factory):
    repo = PlaceCacheRepository(ttl_seconds=3600)
    with session_factory() as session:
        repo.put(session, _entry(country="US", city="New York"))

        hit = repo.get(session, "Joe's  Pizza", country="US", city="New York")
        assert hit is not None
        assert hit.place_id == "pid-1"
        assert hit.to_place_record().name == "Joe's Pizza"

        assert repo.get(session, "joe's pizza") is None
        assert repo.get(session, "joe's pizza", country="US", city="Boston") is None


def test_last_write_wins_keeps_single_row(session_factory):
    repo = PlaceCacheRepository(ttl_seconds=3600)
    with session_factory() as session:
        repo.put(session, _entry(place_id="pid-old", score=0.8))
        repo.put(session, _entry(place_id="pid-new", score=0.9))

        assert session.query(PlaceCacheORM).count() == 1
        assert repo.get(session, "joe's pizza").place_id == "pid-new"


def test_expired_entries_are_ignored(session_factory):
    repo = PlaceCacheRepository(ttl_seconds=60)
    with session_factory() as session:
        repo.put(session, _entry())
        row = session.query(PlaceCacheORM).one()
        row.created_at = datetime.utcnow() - timedelta(seconds=120)
        session.commit()

        assert repo.get(session, "joe's pizza") is None


def test_zero_ttl_never_expires(session_factory):
    repo = PlaceCacheRepository(ttl_seconds=0)
    with session_factory() as session:
        repo.put(session, _entry())
        row = session.query(PlaceCacheORM).one()
        row.created_at = datetime.utcnow() - timedelta(days=3650)
        session.commit()

        assert repo.get(session, "joe's pizza") is not None


def test_rewrite_refreshes_expired_entry(session_factory):
    repo = PlaceCacheRepository(ttl_seconds=60)
    with session_factory() as session:
        repo.put(session, _entry())
        row = session.query(PlaceCacheORM).one()
        row.created_at = datetime.utcnow() - timedelta(seconds=120)
        session.commit()

        repo.put(session, _entry(place_id="pid-2"))

        assert repo.get(session, "joe's pizza").place_id == "pid-2"


def test_rating_and_categories_survive_round_trip(session_factory):
    repo = PlaceCacheRepository(ttl_seconds=3600)
    entry = _entry()
    entry.rating = 4.6
    entry.categories = ["restaurant", "food"]
    with session_factory() as session:
        repo.put(session, entry)

        place = repo.get(session, "joe's pizza").to_place_record()

    assert place.rating == 4.6
    assert place.categories == ["restaurant", "food"]
