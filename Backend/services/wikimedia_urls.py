# Backend/services/wikimedia_urls.py
from __future__ import annotations

import math
import re
from typing import Dict, Optional, Union
from urllib.parse import quote

from app.core.config import get_wikimedia_user_agent, settings
from app.models.image_source import RemoteImageSource
from services.content_errors import InvalidArgumentError

_FILE_PREFIX = re.compile(r"^file:", re.IGNORECASE)

# encodeURIComponent leaves these unescaped; quote() already keeps A-Za-z0-9 and "_.-~"
_URI_COMPONENT_SAFE = "!*'()"


def wikimedia_headers() -> Dict[str, str]:
    """
    Headers required by the Wikimedia User-Agent policy. Sent under both
    names because browsers and some clients drop a custom User-Agent.
    """
    user_agent = get_wikimedia_user_agent()
    return {
        "User-Agent": user_agent,
        "Api-User-Agent": user_agent,
    }


WIKIMEDIA_HEADERS: Dict[str, str] = wikimedia_headers()


def _resolve_width(width: Optional[Union[int, float]]) -> Optional[int]:
    if width is None or isinstance(width, bool):
        return None
    if not isinstance(width, (int, float)):
        return None
    if not math.isfinite(width) or width <= 0:
        return None
    floored = math.floor(width)
    return floored if floored > 0 else None


def build_file_url(raw_file_name: str, width: Optional[Union[int, float]] = None) -> str:
    """
    Canonical Special:FilePath URL for a Commons file.

    A leading "File:" (any case) is stripped. Underscores are kept as-is:
    Commons file names use them in place of spaces and rewriting them breaks
    the lookup.
    """
    trimmed = (raw_file_name or "").strip()
    if not trimmed:
        raise InvalidArgumentError("build_file_url requires a non-empty file name")

    normalized_name = _FILE_PREFIX.sub("", trimmed, count=1)
    encoded_name = quote(normalized_name, safe=_URI_COMPONENT_SAFE)

    base = settings.WIKIMEDIA_COMMONS_FILE_PATH_URL.rstrip("/")
    url = f"{base}/{encoded_name}"

    resolved_width = _resolve_width(width)
    if resolved_width is not None:
        url = f"{url}?width={resolved_width}"
    return url


def build_image_source(raw_file_name: str, width: Optional[Union[int, float]] = None) -> RemoteImageSource:
    return RemoteImageSource(
        uri=build_file_url(raw_file_name, width=width),
        headers=dict(WIKIMEDIA_HEADERS),
    )
