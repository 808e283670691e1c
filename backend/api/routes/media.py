"""
Media resolution API routes.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, HttpUrl

from db import SessionLocal
from domain.errors import ErrorKind
from domain.models import MediaStatus, ResolutionError, ResolveRequest
from repositories import MediaRepository
from services.resolver import MediaResolver, build_resolver
from settings import settings

router = APIRouter()
media_repo = MediaRepository()

_resolver: Optional[MediaResolver] = None


def get_resolver() -> MediaResolver:
    global _resolver
    if _resolver is None:
        _resolver = build_resolver(settings, SessionLocal)
    return _resolver


class ResolveMediaRequest(BaseModel):
    media_id: UUID
    frame_urls: List[HttpUrl]
    country: Optional[str] = None
    city: Optional[str] = None


class OcrRequest(BaseModel):
    media_id: UUID
    image_url: HttpUrl


class ConfirmRequest(BaseModel):
    place_id: str


class CandidateResponse(BaseModel):
    name: str
    address: str
    lat: float
    lng: float
    place_id: str
    score: float


class MediaResponse(BaseModel):
    id: str
    status: str
    ocr_text: Optional[str] = None
    restaurant_id: Optional[str] = None
    frame_urls: List[str]
    country: Optional[str] = None
    city: Optional[str] = None


def _status_code_for(error: ResolutionError) -> int:
    return 400 if error.kind == ErrorKind.VALIDATION else 500


@router.post("/resolve")
def resolve_media(body: ResolveMediaRequest, resolver: MediaResolver = Depends(get_resolver)):
    """
    Resolve a media item's frames to a restaurant.

    Returns either a confirmed restaurant or up to three candidates for the user.
    """
    outcome = resolver.resolve(
        ResolveRequest(
            media_id=str(body.media_id),
            frame_urls=[str(u) for u in body.frame_urls],
            country=body.country,
            city=body.city,
        )
    )
    if isinstance(outcome, ResolutionError):
        return JSONResponse(status_code=_status_code_for(outcome), content=outcome.to_dict())
    return outcome.to_dict()


@router.post("/ocr")
def process_ocr(body: OcrRequest, resolver: MediaResolver = Depends(get_resolver)):
    """Run OCR on a single image and store the recognized text."""
    result = resolver.process_ocr(str(body.media_id), str(body.image_url))
    if result.status == MediaStatus.ERROR:
        status_code = 400 if result.error_kind == ErrorKind.VALIDATION else 500
        return JSONResponse(status_code=status_code, content=result.to_dict())
    return result.to_dict()


@router.post("/{media_id}/confirm")
def confirm_media_place(
    media_id: UUID, body: ConfirmRequest, resolver: MediaResolver = Depends(get_resolver)
):
    """Confirm a user-selected place for a media item awaiting review."""
    outcome = resolver.confirm_place(str(media_id), body.place_id)
    if isinstance(outcome, ResolutionError):
        return JSONResponse(status_code=_status_code_for(outcome), content=outcome.to_dict())
    return outcome.to_dict()


@router.get("/{media_id}", response_model=MediaResponse)
def get_media(media_id: UUID):
    """Get a media item's current status and stored OCR text."""
    with SessionLocal() as session:
        media = media_repo.get_media(session, str(media_id))
        if not media:
            raise HTTPException(status_code=404, detail="Media not found")
        return MediaResponse(**media.to_dict())
