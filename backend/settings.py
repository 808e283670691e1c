import os

# Basic settings helper to read environment configuration.


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_float(val: str | None, default: float) -> float:
    if val is None or val.strip() == "":
        return default
    return float(val)


def _as_int(val: str | None, default: int) -> int:
    if val is None or val.strip() == "":
        return default
    return int(val)


class Settings:
    def __init__(self) -> None:
        self.GOOGLE_VISION_API_KEY: str | None = os.getenv("GOOGLE_VISION_API_KEY")
        self.GOOGLE_MAPS_API_KEY: str | None = os.getenv("GOOGLE_MAPS_API_KEY")

        # Legacy feature flag wins over OCR_PROVIDER when set.
        provider = (os.getenv("OCR_PROVIDER") or "vision").lower()
        if _as_bool(os.getenv("FEATURE_USE_TESSERACT"), False):
            provider = "tesseract"
        self.OCR_PROVIDER: str = provider

        self.CONFIRM_THRESHOLD: float = _as_float(os.getenv("CONFIRM_THRESHOLD"), 0.75)
        self.CATEGORY_BONUS: float = _as_float(os.getenv("CATEGORY_BONUS"), 0.1)
        self.RATING_BONUS: float = _as_float(os.getenv("RATING_BONUS"), 0.1)
        self.RATING_BONUS_FLOOR: float = _as_float(os.getenv("RATING_BONUS_FLOOR"), 4.0)

        self.MAX_SEARCH_CANDIDATES: int = _as_int(os.getenv("MAX_SEARCH_CANDIDATES"), 3)
        self.MAX_RESULTS: int = _as_int(os.getenv("MAX_RESULTS"), 3)
        self.MAX_WORKERS: int = _as_int(os.getenv("MAX_WORKERS"), 5)
        self.HTTP_TIMEOUT_SECONDS: float = _as_float(os.getenv("HTTP_TIMEOUT_SECONDS"), 10.0)

        self.PLACES_CATEGORY: str = os.getenv("PLACES_CATEGORY") or "restaurant"
        self.PLACE_CACHE_ENABLED: bool = _as_bool(os.getenv("PLACE_CACHE_ENABLED"), True)
        self.PLACE_CACHE_TTL_SECONDS: int = _as_int(
            os.getenv("PLACE_CACHE_TTL_SECONDS"), 30 * 24 * 3600
        )

        self.DATABASE_URL: str | None = os.getenv("DATABASE_URL")
        self.LOG_LEVEL: str = (os.getenv("LOG_LEVEL") or "INFO").upper()


settings = Settings()
