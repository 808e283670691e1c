"""
Restaurant repository backed by SQLAlchemy.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from domain.models import PlaceRecord, Restaurant
from repositories.models import RestaurantORM


def _restaurant_from_orm(orm: RestaurantORM) -> Restaurant:
    return Restaurant(
        id=orm.id,
        name=orm.name,
        address=orm.address,
        lat=orm.lat,
        lng=orm.lng,
        place_provider=orm.place_provider,
        place_id=orm.place_id,
        tags=list(orm.tags or []),
        created_by=orm.created_by,
        created_at=orm.created_at,
    )


class RestaurantsRepository:
    """CRUD operations for restaurants, keyed by provider place_id."""

    def get_restaurant(self, session: Session, restaurant_id: str) -> Optional[Restaurant]:
        orm = session.get(RestaurantORM, restaurant_id)
        return _restaurant_from_orm(orm) if orm else None

    def upsert_from_place(
        self,
        session: Session,
        place: PlaceRecord,
        created_by: Optional[str] = None,
        tags: Optional[List[str]] = None,
        provider: str = "google",
    ) -> Restaurant:
        """
        Return the restaurant for `place.place_id`, creating it when missing.

        Only flushes; the caller owns the commit so the restaurant and the media
        link land in the same transaction.
        """
        orm = (
            session.query(RestaurantORM)
            .filter(RestaurantORM.place_id == place.place_id)
            .first()
        )
        if orm is None:
            orm = RestaurantORM(
                id=Restaurant.generate_id(),
                name=place.name,
                address=place.address,
                lat=place.lat,
                lng=place.lng,
                place_provider=provider,
                place_id=place.place_id,
                tags=list(tags or []),
                created_by=created_by,
                created_at=datetime.utcnow(),
            )
        else:
            # refresh canonical fields, merge tags
            orm.name = place.name
            orm.address = place.address
            orm.lat = place.lat
            orm.lng = place.lng
            merged = list(orm.tags or [])
            for tag in tags or []:
                if tag not in merged:
                    merged.append(tag)
            orm.tags = merged
        session.add(orm)
        session.flush()
        return _restaurant_from_orm(orm)
