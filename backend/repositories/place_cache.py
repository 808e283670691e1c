"""
Place lookup cache stored alongside the other tables.

Entries are keyed by (normalized_query, country, city). Writes are last-write-wins;
reads ignore entries older than the configured TTL (ttl_seconds <= 0 never expires).
"""
from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Query, Session

from domain.models import CacheEntry
from repositories.models import PlaceCacheORM

DEFAULT_TTL_SECONDS = 30 * 24 * 3600

_WS_RE = re.compile(r"\s+")


def normalize_query(query: str) -> str:
    """Lower-case, trim and collapse internal whitespace."""
    return _WS_RE.sub(" ", (query or "").strip().lower())


def _entry_from_orm(orm: PlaceCacheORM) -> CacheEntry:
    return CacheEntry(
        normalized_query=orm.normalized_query,
        country=orm.country,
        city=orm.city,
        provider=orm.provider,
        place_id=orm.place_id or "",
        name=orm.name or "",
        address=orm.address,
        lat=float(orm.lat or 0.0),
        lng=float(orm.lng or 0.0),
        score=float(orm.score or 0.0),
        rating=orm.rating,
        categories=list(orm.categories) if orm.categories else None,
        created_at=orm.created_at,
    )


def _key_query(session: Session, normalized: str, country: Optional[str], city: Optional[str]) -> Query:
    query = session.query(PlaceCacheORM).filter(PlaceCacheORM.normalized_query == normalized)
    query = query.filter(
        PlaceCacheORM.country.is_(None) if country is None else PlaceCacheORM.country == country
    )
    query = query.filter(
        PlaceCacheORM.city.is_(None) if city is None else PlaceCacheORM.city == city
    )
    return query


class PlaceCacheRepository:
    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds

    def _is_expired(self, created_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
        if self.ttl_seconds <= 0 or created_at is None:
            return False
        now = now or datetime.utcnow()
        return now - created_at > timedelta(seconds=self.ttl_seconds)

    def get(
        self,
        session: Session,
        query: str,
        country: Optional[str] = None,
        city: Optional[str] = None,
    ) -> Optional[CacheEntry]:
        """Return the newest non-expired entry for the key, or None."""
        orm = (
            _key_query(session, normalize_query(query), country, city)
            .order_by(PlaceCacheORM.created_at.desc())
            .first()
        )
        if orm is None or not orm.place_id:
            return None
        if self._is_expired(orm.created_at):
            return None
        return _entry_from_orm(orm)

    def put(self, session: Session, entry: CacheEntry) -> CacheEntry:
        """Upsert the entry for its key; an existing row is overwritten and its age reset."""
        normalized = normalize_query(entry.normalized_query)
        orm = _key_query(session, normalized, entry.country, entry.city).first()
        if orm is None:
            orm = PlaceCacheORM(
                id=str(uuid.uuid4()),
                normalized_query=normalized,
                country=entry.country,
                city=entry.city,
            )
        orm.provider = entry.provider
        orm.place_id = entry.place_id
        orm.name = entry.name
        orm.address = entry.address
        orm.lat = entry.lat
        orm.lng = entry.lng
        orm.score = entry.score
        orm.rating = entry.rating
        orm.categories = list(entry.categories) if entry.categories else None
        orm.created_at = datetime.utcnow()
        session.add(orm)
        session.commit()
        session.refresh(orm)
        return _entry_from_orm(orm)
