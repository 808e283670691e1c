"""
Text extraction from frame images.

Two interchangeable engines share one contract:
- VisionTextExtractor: Google Cloud Vision TEXT_DETECTION over HTTP.
- TesseractTextExtractor: local Tesseract via pytesseract, for offline use.

Each makes a single attempt per image and raises ProviderError on failure; the
resolver substitutes an empty result for that frame.
"""
from __future__ import annotations

import logging
from io import BytesIO
from typing import List, Optional

import pytesseract
import requests
from PIL import Image, ImageOps

from domain.errors import ProviderError
from domain.models import OCRResult
from services.http_session import SessionPerThread
from settings import Settings

VISION_ANNOTATE_URL = "https://vision.googleapis.com/v1/images:annotate"

logger = logging.getLogger(__name__)


def _clamp_confidence(value: float) -> float:
    return max(0.0, min(float(value), 1.0))


class TextExtractor:
    """Base interface for OCR engines."""

    name = "base"

    def annotate(self, image_url: str) -> List[str]:
        """Return text annotations for the image; the first entry is the full text."""
        raise NotImplementedError

    def extract(self, image_url: str) -> OCRResult:
        raise NotImplementedError


class VisionTextExtractor(TextExtractor):
    name = "vision"

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 10.0,
        endpoint: str = VISION_ANNOTATE_URL,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.endpoint = endpoint
        self._sessions = SessionPerThread(session)

    @property
    def session(self) -> requests.Session:
        return self._sessions.get()

    def _annotate_response(self, image_url: str) -> dict:
        if not self.api_key:
            raise ProviderError("GOOGLE_VISION_API_KEY not configured")
        payload = {
            "requests": [
                {
                    "image": {"source": {"imageUri": image_url}},
                    "features": [{"type": "TEXT_DETECTION", "maxResults": 1}],
                }
            ]
        }
        try:
            resp = self.session.post(
                self.endpoint,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise ProviderError(f"Vision API request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(f"Vision API returned invalid JSON: {exc}") from exc

        responses = data.get("responses") or [{}]
        response = responses[0] or {}
        if "error" in response:
            message = response["error"].get("message", "Unknown error")
            raise ProviderError(f"Vision API error: {message}")
        return response

    def annotate(self, image_url: str) -> List[str]:
        response = self._annotate_response(image_url)
        annotations = response.get("textAnnotations") or []
        return [a.get("description", "") for a in annotations if a.get("description")]

    def extract(self, image_url: str) -> OCRResult:
        response = self._annotate_response(image_url)
        annotations = response.get("textAnnotations") or []
        if not annotations:
            logger.info("Vision found no text in %s", image_url)
            return OCRResult.empty()

        full = annotations[0]
        text = full.get("description", "") or ""
        confidence = full.get("confidence")
        if confidence is None:
            pages = (response.get("fullTextAnnotation") or {}).get("pages") or []
            page_conf = [p["confidence"] for p in pages if "confidence" in p]
            confidence = sum(page_conf) / len(page_conf) if page_conf else 0.0
        logger.debug("Vision extracted %d chars from %s", len(text), image_url)
        return OCRResult(text=text, confidence=_clamp_confidence(confidence))


class TesseractTextExtractor(TextExtractor):
    name = "tesseract"

    def __init__(
        self,
        timeout: float = 10.0,
        lang: str = "eng",
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.lang = lang
        self._sessions = SessionPerThread(session)

    @property
    def session(self) -> requests.Session:
        return self._sessions.get()

    def _load_image(self, image_url: str) -> Image.Image:
        try:
            resp = self.session.get(image_url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise ProviderError(f"Image download failed: {exc}") from exc
        try:
            img = Image.open(BytesIO(resp.content))
            img = ImageOps.exif_transpose(img)
            return img.convert("RGB")
        except OSError as exc:
            raise ProviderError(f"Unreadable image at {image_url}: {exc}") from exc

    def _run(self, image_url: str) -> tuple[str, List[str], float]:
        img = self._load_image(image_url)
        try:
            text = pytesseract.image_to_string(img, lang=self.lang)
            data = pytesseract.image_to_data(
                img, lang=self.lang, output_type=pytesseract.Output.DICT
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as exc:
            raise ProviderError(f"Tesseract failed: {exc}") from exc

        words: List[str] = []
        confidences: List[float] = []
        for word, conf in zip(data.get("text", []), data.get("conf", [])):
            if not word or not word.strip():
                continue
            words.append(word.strip())
            conf_value = float(conf)
            if conf_value >= 0:
                confidences.append(conf_value)
        mean_conf = sum(confidences) / len(confidences) / 100.0 if confidences else 0.0
        return text.strip(), words, _clamp_confidence(mean_conf)

    def annotate(self, image_url: str) -> List[str]:
        text, words, _ = self._run(image_url)
        if not text:
            return []
        return [text] + words

    def extract(self, image_url: str) -> OCRResult:
        text, _, confidence = self._run(image_url)
        return OCRResult(text=text, confidence=confidence if text else 0.0)


def build_text_extractor(settings: Settings) -> TextExtractor:
    """Pick the OCR engine once, from configuration."""
    if settings.OCR_PROVIDER == "tesseract":
        return TesseractTextExtractor(timeout=settings.HTTP_TIMEOUT_SECONDS)
    if settings.OCR_PROVIDER != "vision":
        logger.warning("Unknown OCR_PROVIDER %r; using vision", settings.OCR_PROVIDER)
    return VisionTextExtractor(
        api_key=settings.GOOGLE_VISION_API_KEY,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
