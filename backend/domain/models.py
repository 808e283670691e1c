"""
Core domain models for media-to-restaurant resolution.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import uuid

from domain.errors import ErrorKind


class MediaStatus(str, Enum):
    """
    Lifecycle of a media item.

    uploaded -> processing -> exactly one of done / needs_confirmation / error.
    """
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    DONE = "done"
    NEEDS_CONFIRMATION = "needs_confirmation"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {MediaStatus.DONE, MediaStatus.NEEDS_CONFIRMATION, MediaStatus.ERROR}
)


class MediaType(str, Enum):
    VIDEO = "video"
    PHOTO = "photo"


@dataclass
class MediaItem:
    """
    A photo or video whose frames are resolved to a restaurant.

    Owned by the caller; only the resolver mutates `status`.
    """
    id: str
    frame_urls: List[str] = field(default_factory=list)
    country: Optional[str] = None
    city: Optional[str] = None
    status: MediaStatus = MediaStatus.UPLOADED
    ocr_text: Optional[str] = None
    restaurant_id: Optional[str] = None
    user_id: Optional[str] = None
    storage_path: Optional[str] = None
    media_type: Optional[MediaType] = None
    source_app: Optional[str] = None  # "tiktok" | "instagram" | "gallery" | "camera"
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "ocr_text": self.ocr_text,
            "restaurant_id": self.restaurant_id,
            "frame_urls": list(self.frame_urls),
            "country": self.country,
            "city": self.city,
        }


@dataclass(frozen=True)
class OCRResult:
    """Recognized text for a single frame."""
    text: str
    confidence: float

    @classmethod
    def empty(cls) -> "OCRResult":
        return cls(text="", confidence=0.0)


@dataclass
class PlaceRecord:
    """A place returned by the place-search provider. `place_id` is the join key."""
    name: str
    address: str
    lat: float
    lng: float
    place_id: str
    rating: Optional[float] = None
    categories: Optional[List[str]] = None


@dataclass
class ScoredPlace:
    place: PlaceRecord
    score: float
    matched_candidate: Optional[str] = None  # candidate that produced the best similarity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.place.name,
            "address": self.place.address,
            "lat": self.place.lat,
            "lng": self.place.lng,
            "place_id": self.place.place_id,
            "score": self.score,
        }


@dataclass
class Restaurant:
    """A persisted place linked to one or more media items."""
    id: str
    name: str
    lat: float
    lng: float
    address: Optional[str] = None
    place_provider: str = "google"
    place_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @staticmethod
    def generate_id() -> str:
        return str(uuid.uuid4())


@dataclass
class CacheEntry:
    """Cached winning place for a (normalized query, country, city) key."""
    normalized_query: str
    place_id: str
    name: str
    address: Optional[str]
    lat: float
    lng: float
    score: float
    country: Optional[str] = None
    city: Optional[str] = None
    rating: Optional[float] = None
    categories: Optional[List[str]] = None
    provider: str = "google"
    created_at: Optional[datetime] = None

    def to_place_record(self) -> PlaceRecord:
        return PlaceRecord(
            name=self.name,
            address=self.address or "",
            lat=self.lat,
            lng=self.lng,
            place_id=self.place_id,
            rating=self.rating,
            categories=list(self.categories) if self.categories else None,
        )


@dataclass
class ResolveRequest:
    media_id: str
    frame_urls: List[str]
    country: Optional[str] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class Confirmed:
    restaurant_id: str
    score: float

    status = MediaStatus.DONE

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "confirmed", "restaurant_id": self.restaurant_id, "score": self.score}


@dataclass(frozen=True)
class NeedsConfirmation:
    candidates: List[ScoredPlace]
    ocr_text: str

    status = MediaStatus.NEEDS_CONFIRMATION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "needs_confirmation",
            "candidates": [c.to_dict() for c in self.candidates],
            "ocr_text": self.ocr_text,
        }


@dataclass(frozen=True)
class ResolutionError:
    """Explicit error result returned instead of raising out of the resolver."""
    kind: ErrorKind
    message: str

    status = MediaStatus.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


ResolutionOutcome = Union[Confirmed, NeedsConfirmation, ResolutionError]


@dataclass(frozen=True)
class OcrOnlyResult:
    status: MediaStatus  # DONE or ERROR
    text: Optional[List[str]] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value}
        if self.text is not None:
            data["text"] = list(self.text)
        if self.error is not None:
            data["error"] = self.error
        return data
