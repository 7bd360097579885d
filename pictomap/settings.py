import os
from typing import List

# Basic settings helper to read environment configuration.


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_list(val: str | None, default: List[str]) -> List[str]:
    if val is None:
        return list(default)
    return [part.strip() for part in val.split(",") if part.strip()]


class Settings:
    def __init__(self) -> None:
        # POI source (Overpass)
        self.OVERPASS_API_URL: str = os.getenv(
            "OVERPASS_API_URL", "https://overpass-api.de/api/interpreter"
        )
        self.POI_DEFAULT_TYPES: List[str] = _as_list(os.getenv("POI_DEFAULT_TYPES"), ["shop", "leisure"])
        self.POI_ELEMENT_KINDS: List[str] = _as_list(os.getenv("POI_ELEMENT_KINDS"), ["node"])
        self.POI_DEFAULT_LIMIT: int = int(os.getenv("POI_DEFAULT_LIMIT", "25"))
        self.POI_MAX_RETRIES: int = int(os.getenv("POI_MAX_RETRIES", "3"))
        self.POI_RETRY_DELAY_SEC: float = float(os.getenv("POI_RETRY_DELAY_SEC", "1.0"))
        self.POI_TIMEOUT_SEC: int = int(os.getenv("POI_TIMEOUT_SEC", "25"))
        self.POI_DERIVE_NAMES: bool = _as_bool(os.getenv("POI_DERIVE_NAMES"), True)
        self.POI_FILTER_OUT_NO_NAME: bool = _as_bool(os.getenv("POI_FILTER_OUT_NO_NAME"), True)

        # Pictogram resolver (Global Symbols)
        self.GLOBAL_SYMBOLS_API_URL: str = os.getenv(
            "GLOBAL_SYMBOLS_API_URL", "https://globalsymbols.com/api/v1/labels/search"
        )
        self.PICTOGRAM_SYMBOL_SET: str = os.getenv("PICTOGRAM_SYMBOL_SET", "arasaac")
        self.PICTOGRAM_LANGUAGE: str = os.getenv("PICTOGRAM_LANGUAGE", "eng")
        self.PICTOGRAM_INCLUDE_TYPE_IN_DISPLAY_TEXT: bool = _as_bool(
            os.getenv("PICTOGRAM_INCLUDE_TYPE_IN_DISPLAY_TEXT"), False
        )
        self.PICTOGRAM_INCLUDE_TYPE_IN_ARIA_LABEL: bool = _as_bool(
            os.getenv("PICTOGRAM_INCLUDE_TYPE_IN_ARIA_LABEL"), True
        )
        self.PICTOGRAM_MAX_RETRIES: int = int(os.getenv("PICTOGRAM_MAX_RETRIES", "2"))
        self.PICTOGRAM_RETRY_DELAY_SEC: float = float(os.getenv("PICTOGRAM_RETRY_DELAY_SEC", "1.0"))

        # Pictogram cache
        self.PICTOGRAM_CACHE_BACKEND: str = os.getenv("PICTOGRAM_CACHE_BACKEND", "memory").lower()
        self.PICTOGRAM_CACHE_PATH: str | None = os.getenv("PICTOGRAM_CACHE_PATH")
        self.PICTOGRAM_CACHE_PREFIX: str = os.getenv("PICTOGRAM_CACHE_PREFIX", "pictomap:pictogram:")
        self.PICTOGRAM_CACHE_TTL_SECONDS: int = int(
            os.getenv("PICTOGRAM_CACHE_TTL_SECONDS", str(7 * 24 * 3600))
        )

        # Marker sequencing
        self.GRID_HORIZONTAL_ORDER: str = os.getenv("GRID_HORIZONTAL_ORDER", "lr")
        self.GRID_VERTICAL_ORDER: str = os.getenv("GRID_VERTICAL_ORDER", "tb")
        self.GRID_ROW_THRESHOLD_PX: float = float(os.getenv("GRID_ROW_THRESHOLD_PX", "64"))

        # Orchestration / HTTP
        self.DEBOUNCE_INTERVAL_MS: int = int(os.getenv("DEBOUNCE_INTERVAL_MS", "300"))
        self.HTTP_TIMEOUT_SEC: float = float(os.getenv("HTTP_TIMEOUT_SEC", "10"))


settings = Settings()
