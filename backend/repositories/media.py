"""
Media repository backed by SQLAlchemy.
"""
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from domain.errors import PersistenceFailure
from domain.models import MediaItem, MediaStatus, MediaType
from repositories.models import MediaORM


def _media_from_orm(orm: MediaORM) -> MediaItem:
    return MediaItem(
        id=orm.id,
        frame_urls=list(orm.frame_urls or []),
        country=orm.country,
        city=orm.city,
        status=MediaStatus(orm.status),
        ocr_text=orm.ocr_text,
        restaurant_id=orm.restaurant_id,
        user_id=orm.user_id,
        storage_path=orm.storage_path,
        media_type=MediaType(orm.type) if orm.type else None,
        source_app=orm.source_app,
        created_at=orm.created_at,
    )


class MediaRepository:
    """CRUD operations for media items."""

    def get_media(self, session: Session, media_id: str) -> Optional[MediaItem]:
        orm = session.get(MediaORM, media_id)
        return _media_from_orm(orm) if orm else None

    def ensure_media(self, session: Session, media: MediaItem) -> MediaItem:
        """Insert the media row if missing, otherwise refresh its frames and locality hint."""
        orm = session.get(MediaORM, media.id)
        if orm is None:
            orm = MediaORM(
                id=media.id,
                user_id=media.user_id,
                storage_path=media.storage_path,
                source_app=media.source_app,
                type=media.media_type.value if media.media_type else None,
                frame_urls=list(media.frame_urls),
                country=media.country,
                city=media.city,
                ocr_text=media.ocr_text,
                status=media.status.value,
                created_at=media.created_at or datetime.utcnow(),
            )
        else:
            if media.frame_urls:
                orm.frame_urls = list(media.frame_urls)
            if media.country is not None:
                orm.country = media.country
            if media.city is not None:
                orm.city = media.city
        session.add(orm)
        session.commit()
        session.refresh(orm)
        return _media_from_orm(orm)

    def update_status(
        self,
        session: Session,
        media_id: str,
        status: MediaStatus,
        ocr_text: Optional[str] = None,
        restaurant_id: Optional[str] = None,
    ) -> MediaItem:
        """Set the media status and, when given, its aggregated OCR text and restaurant link."""
        orm = session.get(MediaORM, media_id)
        if orm is None:
            raise PersistenceFailure(f"Media {media_id} not found")
        orm.status = status.value
        if ocr_text is not None:
            orm.ocr_text = ocr_text
        if restaurant_id is not None:
            orm.restaurant_id = restaurant_id
        session.add(orm)
        session.commit()
        session.refresh(orm)
        return _media_from_orm(orm)
