"""
Media-to-restaurant resolution.

Pipeline stages for one media item:
1. OCR every frame (bounded parallel, failures become empty text)
2. Aggregate and normalize the recognized text
3. Extract candidate place names
4. Search places for the first few candidates (cache first, then provider)
5. Score places against all candidates
6. Auto-confirm the best place above the threshold, otherwise ask the user

The resolver never raises to its caller: every failure becomes a ResolutionError
and the media row is moved to the status matching what is returned.
"""
from __future__ import annotations

import logging
import re
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar
from urllib.parse import urlparse

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.errors import ErrorKind, PersistenceFailure, ResolutionFailure, ValidationFailure
from domain.models import (
    CacheEntry,
    Confirmed,
    MediaItem,
    MediaStatus,
    NeedsConfirmation,
    OCRResult,
    OcrOnlyResult,
    PlaceRecord,
    ResolutionError,
    ResolutionOutcome,
    ResolveRequest,
    ScoredPlace,
)
from repositories import MediaRepository, PlaceCacheRepository, RestaurantsRepository
from services.candidates import extract_candidates
from services.ocr import TextExtractor, build_text_extractor
from services.places_client import PlacesClient, build_places_client
from services.similarity import score_places
from settings import Settings

logger = logging.getLogger(__name__)

AUTO_CONFIRM_TAGS = ["ai-analyzed"]
USER_CONFIRM_TAGS = ["user-confirmed"]
FRAME_SEPARATOR = "\n"

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")

T = TypeVar("T")
R = TypeVar("R")


def aggregate_ocr_text(results: Sequence[OCRResult]) -> Tuple[str, str]:
    """
    Join frame texts and return (raw, normalized).

    raw is the lower-cased join used for candidate extraction; normalized has
    punctuation replaced by spaces and whitespace collapsed, and is what gets
    stored and shown.
    """
    raw = FRAME_SEPARATOR.join(r.text for r in results).lower()
    normalized = _WS_RE.sub(" ", _NON_WORD_RE.sub(" ", raw)).strip()
    return raw, normalized


def _validate_media_id(media_id: str) -> str:
    try:
        return str(uuid.UUID(str(media_id)))
    except ValueError:
        raise ValidationFailure(f"Invalid media_id: {media_id!r}")


def _validate_url(url: str) -> None:
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationFailure(f"Invalid URL: {url!r}")


def _error_from_exception(exc: Exception) -> ResolutionError:
    if isinstance(exc, ResolutionFailure):
        return ResolutionError(kind=exc.kind, message=exc.message)
    if isinstance(exc, SQLAlchemyError):
        return ResolutionError(kind=ErrorKind.PERSISTENCE, message="Failed to persist media result")
    return ResolutionError(kind=ErrorKind.INTERNAL, message=str(exc) or exc.__class__.__name__)


class MediaResolver:
    def __init__(
        self,
        text_extractor: TextExtractor,
        places_client: PlacesClient,
        session_factory: Callable[[], Session],
        settings: Settings,
        media_repo: Optional[MediaRepository] = None,
        restaurants_repo: Optional[RestaurantsRepository] = None,
        cache_repo: Optional[PlaceCacheRepository] = None,
    ):
        self.text_extractor = text_extractor
        self.places_client = places_client
        self.session_factory = session_factory
        self.settings = settings
        self.media_repo = media_repo or MediaRepository()
        self.restaurants_repo = restaurants_repo or RestaurantsRepository()
        self.cache_repo = cache_repo

    # ------------------------------------------------------------------ helpers

    def _map_bounded(self, func: Callable[[T], R], items: Sequence[T]) -> List[R]:
        """Apply func to items with at most MAX_WORKERS threads, keeping input order."""
        workers = min(max(self.settings.MAX_WORKERS, 1), len(items))
        if workers <= 1:
            return [func(item) for item in items]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(func, items))

    def _extract_frame(self, frame_url: str) -> OCRResult:
        try:
            return self.text_extractor.extract(frame_url)
        except Exception as exc:
            logger.warning("OCR failed for frame %s: %s", frame_url, exc)
            return OCRResult.empty()

    def _search_one(self, query: Tuple[str, Optional[str], Optional[str]]) -> List[PlaceRecord]:
        candidate, country, city = query
        try:
            return self.places_client.search(candidate, country=country, city=city)
        except Exception as exc:
            logger.warning("Place search failed for candidate %r: %s", candidate, exc)
            return []

    def _cached_place(
        self, session: Session, candidate: str, country: Optional[str], city: Optional[str]
    ) -> Optional[PlaceRecord]:
        if self.cache_repo is None:
            return None
        try:
            entry = self.cache_repo.get(session, candidate, country=country, city=city)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("Place cache read failed for %r: %s", candidate, exc)
            return None
        if entry is None:
            return None
        logger.debug("Place cache hit for %r -> %s", candidate, entry.place_id)
        return entry.to_place_record()

    def _search_candidates(
        self,
        session: Session,
        candidates: Sequence[str],
        country: Optional[str],
        city: Optional[str],
    ) -> List[PlaceRecord]:
        per_candidate: List[Optional[List[PlaceRecord]]] = []
        misses: List[int] = []
        for idx, candidate in enumerate(candidates):
            cached = self._cached_place(session, candidate, country, city)
            if cached is not None:
                per_candidate.append([cached])
            else:
                per_candidate.append(None)
                misses.append(idx)

        fetched = self._map_bounded(
            self._search_one, [(candidates[i], country, city) for i in misses]
        )
        for idx, places in zip(misses, fetched):
            per_candidate[idx] = places

        places: List[PlaceRecord] = []
        for found in per_candidate:
            places.extend(found or [])
        return places

    def _write_cache(
        self,
        session: Session,
        best: ScoredPlace,
        country: Optional[str],
        city: Optional[str],
    ) -> None:
        if self.cache_repo is None or not best.matched_candidate:
            return
        entry = CacheEntry(
            normalized_query=best.matched_candidate,
            country=country,
            city=city,
            provider=self.places_client.provider,
            place_id=best.place.place_id,
            name=best.place.name,
            address=best.place.address,
            lat=best.place.lat,
            lng=best.place.lng,
            score=best.score,
            rating=best.place.rating,
            categories=best.place.categories,
        )
        try:
            self.cache_repo.put(session, entry)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("Place cache write failed for %r: %s", best.matched_candidate, exc)

    def _begin(self, session: Session, media: MediaItem) -> MediaItem:
        """Create or refresh the media row and move it to processing."""
        existing = self.media_repo.get_media(session, media.id)
        if existing is not None and existing.status.is_terminal:
            raise ValidationFailure(
                f"Media {media.id} is already resolved (status={existing.status.value})"
            )
        self.media_repo.ensure_media(session, media)
        return self.media_repo.update_status(session, media.id, MediaStatus.PROCESSING)

    def _mark_error(self, session: Session, media_id: str) -> None:
        """
        Move the media row to `error` in a fresh transaction.

        If this write fails too, the row is left in `processing` while the caller
        still receives the error result. The failure is logged with the media id so
        the row can be found. `processing` is not terminal, so resolving the media
        again starts over and can repair it.
        """
        try:
            self.media_repo.update_status(session, media_id, MediaStatus.ERROR)
        except (SQLAlchemyError, PersistenceFailure):
            session.rollback()
            logger.exception("Could not record error status for media %s", media_id)

    def _fail(self, session: Session, media_id: Optional[str], exc: Exception) -> ResolutionError:
        session.rollback()
        error = _error_from_exception(exc)
        if error.kind == ErrorKind.INTERNAL:
            logger.exception("Unexpected error while resolving media %s", media_id)
        else:
            logger.warning("Resolving media %s failed (%s): %s", media_id, error.kind.value, error.message)
        if media_id is not None:
            self._mark_error(session, media_id)
        return error

    # ----------------------------------------------------------------- pipeline

    def _needs_confirmation(
        self,
        session: Session,
        media: MediaItem,
        candidates: List[ScoredPlace],
        ocr_text: str,
    ) -> NeedsConfirmation:
        self.media_repo.update_status(
            session, media.id, MediaStatus.NEEDS_CONFIRMATION, ocr_text=ocr_text
        )
        return NeedsConfirmation(candidates=candidates, ocr_text=ocr_text)

    def _confirm(
        self,
        session: Session,
        media: MediaItem,
        best: ScoredPlace,
        ocr_text: str,
    ) -> Confirmed:
        restaurant = self.restaurants_repo.upsert_from_place(
            session,
            best.place,
            created_by=media.user_id,
            tags=AUTO_CONFIRM_TAGS,
            provider=self.places_client.provider,
        )
        # restaurant insert and media link commit together
        self.media_repo.update_status(
            session,
            media.id,
            MediaStatus.DONE,
            ocr_text=ocr_text,
            restaurant_id=restaurant.id,
        )
        self._write_cache(session, best, media.country, media.city)
        return Confirmed(restaurant_id=restaurant.id, score=best.score)

    def _run(self, session: Session, media: MediaItem) -> ResolutionOutcome:
        ocr_results = self._map_bounded(self._extract_frame, media.frame_urls)
        raw_text, ocr_text = aggregate_ocr_text(ocr_results)

        candidates = extract_candidates(raw_text)
        logger.info("Media %s: %d frames, %d candidates", media.id, len(ocr_results), len(candidates))
        if not candidates:
            return self._needs_confirmation(session, media, [], ocr_text)

        places = self._search_candidates(
            session,
            candidates[: self.settings.MAX_SEARCH_CANDIDATES],
            media.country,
            media.city,
        )
        if not places:
            return self._needs_confirmation(session, media, [], ocr_text)

        ranked = score_places(
            candidates,
            places,
            category_bonus=self.settings.CATEGORY_BONUS,
            rating_bonus=self.settings.RATING_BONUS,
            rating_floor=self.settings.RATING_BONUS_FLOOR,
        )
        top = ranked[: self.settings.MAX_RESULTS]
        best = top[0]
        logger.info(
            "Media %s: best match %r score=%.3f (threshold %.2f)",
            media.id,
            best.place.name,
            best.score,
            self.settings.CONFIRM_THRESHOLD,
        )
        if best.score >= self.settings.CONFIRM_THRESHOLD:
            return self._confirm(session, media, best, ocr_text)
        return self._needs_confirmation(session, media, top, ocr_text)

    # --------------------------------------------------------------- entry points

    def resolve(self, request: ResolveRequest) -> ResolutionOutcome:
        """Resolve a media item's frames to a restaurant or a short list to review."""
        try:
            media_id = _validate_media_id(request.media_id)
            for url in request.frame_urls:
                _validate_url(url)
        except ValidationFailure as exc:
            return ResolutionError(kind=exc.kind, message=exc.message)

        with self.session_factory() as session:
            media = MediaItem(
                id=media_id,
                frame_urls=list(request.frame_urls),
                country=request.country,
                city=request.city,
            )
            try:
                media = self._begin(session, media)
            except ValidationFailure as exc:
                return ResolutionError(kind=exc.kind, message=exc.message)
            except Exception as exc:
                return self._fail(session, None, exc)

            # the request's frames and hint drive this run even if the row had others
            media.frame_urls = list(request.frame_urls)
            media.country = request.country
            media.city = request.city
            try:
                return self._run(session, media)
            except Exception as exc:
                return self._fail(session, media.id, exc)

    def process_ocr(self, media_id: str, image_url: str) -> OcrOnlyResult:
        """Run OCR on a single image and store the full text, without place search."""
        try:
            media_id = _validate_media_id(media_id)
            _validate_url(image_url)
        except ValidationFailure as exc:
            return OcrOnlyResult(
                status=MediaStatus.ERROR, error=exc.message, error_kind=exc.kind
            )

        with self.session_factory() as session:
            try:
                self._begin(session, MediaItem(id=media_id, frame_urls=[image_url]))
            except ValidationFailure as exc:
                return OcrOnlyResult(
                    status=MediaStatus.ERROR, error=exc.message, error_kind=exc.kind
                )
            except Exception as exc:
                error = self._fail(session, None, exc)
                return OcrOnlyResult(
                    status=MediaStatus.ERROR, error=error.message, error_kind=error.kind
                )

            try:
                annotations = self.text_extractor.annotate(image_url)
                full_text = annotations[0] if annotations else ""
                self.media_repo.update_status(
                    session, media_id, MediaStatus.DONE, ocr_text=full_text
                )
                logger.info("OCR for media %s found %d text elements", media_id, len(annotations))
                return OcrOnlyResult(status=MediaStatus.DONE, text=annotations[1:])
            except Exception as exc:
                error = self._fail(session, media_id, exc)
                return OcrOnlyResult(
                    status=MediaStatus.ERROR, error=error.message, error_kind=error.kind
                )

    def confirm_place(self, media_id: str, place_id: str) -> ResolutionOutcome:
        """Attach a user-picked place to a media item awaiting confirmation."""
        try:
            media_id = _validate_media_id(media_id)
            if not place_id or not place_id.strip():
                raise ValidationFailure("place_id is required")
        except ValidationFailure as exc:
            return ResolutionError(kind=exc.kind, message=exc.message)

        with self.session_factory() as session:
            try:
                media = self.media_repo.get_media(session, media_id)
                if media is None:
                    raise ValidationFailure(f"Media {media_id} not found")
                if media.status != MediaStatus.NEEDS_CONFIRMATION:
                    raise ValidationFailure(
                        f"Media {media_id} is not awaiting confirmation (status={media.status.value})"
                    )
                place = self.places_client.get_details(place_id)
                if place is None:
                    raise ValidationFailure(f"Place {place_id} not found")
                restaurant = self.restaurants_repo.upsert_from_place(
                    session,
                    place,
                    created_by=media.user_id,
                    tags=USER_CONFIRM_TAGS,
                    provider=self.places_client.provider,
                )
                self.media_repo.update_status(
                    session, media_id, MediaStatus.DONE, restaurant_id=restaurant.id
                )
                return Confirmed(restaurant_id=restaurant.id, score=1.0)
            except Exception as exc:
                # the review state is kept; nothing was committed
                session.rollback()
                error = _error_from_exception(exc)
                if error.kind == ErrorKind.INTERNAL:
                    logger.exception("Unexpected error confirming media %s", media_id)
                elif error.kind != ErrorKind.VALIDATION:
                    logger.warning("Confirming media %s failed (%s): %s", media_id, error.kind.value, error.message)
                return error


def build_resolver(settings: Settings, session_factory: Callable[[], Session]) -> MediaResolver:
    cache_repo = (
        PlaceCacheRepository(ttl_seconds=settings.PLACE_CACHE_TTL_SECONDS)
        if settings.PLACE_CACHE_ENABLED
        else None
    )
    return MediaResolver(
        text_extractor=build_text_extractor(settings),
        places_client=build_places_client(settings),
        session_factory=session_factory,
        settings=settings,
        cache_repo=cache_repo,
    )
