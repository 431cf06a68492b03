# Backend/services/image_source.py
"""
Image source normalization.

Wikimedia's terms require an identifying User-Agent on every hotlinked
request, so each image reference handed to a client goes through
`to_image_source` once. Applying it again is a no-op: headers already on a
descriptor are never overwritten.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Union
from urllib.parse import urlsplit

from app.models.events import EventRecord, MediaAsset, RelatedPage
from app.models.image_source import ImageSource, LocalImageAsset, RemoteImageSource
from services.wikimedia_urls import WIKIMEDIA_HEADERS

WIKIMEDIA_HOSTS = (
    "commons.wikimedia.org",
    "upload.wikimedia.org",
    "en.wikipedia.org",
    "wikipedia.org",
)

ImageSourceInput = Union[str, RemoteImageSource, LocalImageAsset, None]


def is_wikimedia_url(url: str) -> bool:
    """Substring match on the hostname so language and mobile subdomains count."""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return False
    if not hostname:
        return False
    return any(host in hostname for host in WIKIMEDIA_HOSTS)


def create_image_source(uri: Optional[str]) -> Optional[RemoteImageSource]:
    if not uri:
        return None
    if is_wikimedia_url(uri):
        return RemoteImageSource(uri=uri, headers=dict(WIKIMEDIA_HEADERS))
    return RemoteImageSource(uri=uri)


def to_image_source(source: ImageSourceInput) -> Optional[ImageSource]:
    if source is None:
        return None
    if isinstance(source, str):
        return create_image_source(source)
    if isinstance(source, LocalImageAsset):
        return source
    if isinstance(source, RemoteImageSource):
        if source.headers is None and is_wikimedia_url(source.uri):
            return source.model_copy(update={"headers": dict(WIKIMEDIA_HEADERS)})
        return source
    raise TypeError(f"unsupported image source type: {type(source).__name__}")


def get_image_uri(
    source: Union[ImageSourceInput, int, Sequence[Union[ImageSourceInput, int]]],
) -> Optional[str]:
    """First fetchable URI in a string, descriptor, or list of them; local assets have none."""
    if source is None or isinstance(source, (int, LocalImageAsset)):
        return None
    if isinstance(source, str):
        return source or None
    if isinstance(source, RemoteImageSource):
        return source.uri
    if isinstance(source, (list, tuple)):
        for entry in source:
            resolved = get_image_uri(entry)
            if resolved:
                return resolved
    return None


def _with_image(asset: MediaAsset) -> MediaAsset:
    if asset.image is not None:
        return asset
    return asset.model_copy(update={"image": to_image_source(asset.source_url)})


def _page_with_images(page: RelatedPage) -> RelatedPage:
    thumbnails: Iterable[MediaAsset] = page.thumbnails
    return page.model_copy(
        update={
            "thumbnails": [_with_image(asset) for asset in thumbnails],
            "selected_media": _with_image(page.selected_media) if page.selected_media else None,
        }
    )


def attach_image_sources(record: EventRecord) -> EventRecord:
    """Copy of `record` where every media asset carries its normalized descriptor."""
    if not record.related_pages:
        return record
    return record.model_copy(
        update={"related_pages": [_page_with_images(page) for page in record.related_pages]}
    )
