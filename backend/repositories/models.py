"""
SQLAlchemy ORM models for persistence.
"""
from datetime import datetime
from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, JSON, String, Text
from sqlalchemy.orm import relationship

from db import Base


class RestaurantORM(Base):
    __tablename__ = "restaurants"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    place_provider = Column(String, nullable=False, default="google")
    place_id = Column(String, nullable=True, unique=True, index=True)
    tags = Column(JSON, nullable=True)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    media = relationship("MediaORM", back_populates="restaurant")


class MediaORM(Base):
    __tablename__ = "media"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, nullable=True, index=True)
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=True)
    storage_path = Column(String, nullable=True)
    source_app = Column(String, nullable=True)
    type = Column(String, nullable=True)
    frame_urls = Column(JSON, nullable=True)
    country = Column(String, nullable=True)
    city = Column(String, nullable=True)
    ocr_text = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="uploaded", index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    restaurant = relationship("RestaurantORM", back_populates="media")


class PlaceCacheORM(Base):
    __tablename__ = "place_cache"
    __table_args__ = (
        Index("idx_place_cache_query", "normalized_query", "country", "city"),
    )

    id = Column(String, primary_key=True)
    normalized_query = Column(String, nullable=False)
    country = Column(String, nullable=True)
    city = Column(String, nullable=True)
    provider = Column(String, nullable=False, default="google")
    place_id = Column(String, nullable=True)
    name = Column(String, nullable=True)
    address = Column(String, nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    score = Column(Float, nullable=True)
    rating = Column(Float, nullable=True)
    categories = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
