"""
Media URL classification and delivery URLs.

Photo cells hold comma separated Cloudinary, Google Drive or plain URLs,
with videos mixed in. Classification is an ordered chain of rules; the
first rule that matches decides. Anything unmatched is an image.
"""

import logging
import re
from typing import Callable, Iterable, List, NamedTuple, Optional

from catalog.models.property import MediaItem, MediaKind

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = ("mp4", "mov", "avi", "webm", "ogg", "m4v", "3gp", "flv", "wmv", "mkv")
VIDEO_HOSTS = ("cloudinary", "youtube", "vimeo")

# Cloudinary transformations for 520x350 property cards
CLOUDINARY_IMAGE_TRANSFORM = "w_520,h_350,c_fill,q_auto,f_auto,g_center"
CLOUDINARY_VIDEO_TRANSFORM = "w_520,h_350,c_fit,q_auto,f_auto"

_VIDEO_EXTENSION = re.compile(r"\.(?:%s)(?:\?|#|$)" % "|".join(VIDEO_EXTENSIONS), re.IGNORECASE)
_DRIVE_FILE_ID = re.compile(r"/file/d/([a-zA-Z0-9_-]+)")
# Cloudinary transformation parameter keys; a folder name is not one of these
TRANSFORM_KEYS = (
    "ac", "ar", "bo", "br", "co", "cs", "dn", "dpr", "du", "eo", "fl", "fps", "pg", "so", "sp", "vc",
    "a", "b", "c", "d", "e", "f", "g", "h", "l", "o", "q", "r", "t", "u", "w", "x", "y", "z",
)
_TRANSFORM_PARAM = r"(?:%s)_[^,/]+" % "|".join(TRANSFORM_KEYS)
_TRANSFORM_SEGMENT = re.compile(r"^%s(?:,%s)*$" % (_TRANSFORM_PARAM, _TRANSFORM_PARAM))


class MediaRule(NamedTuple):
    name: str
    matches: Callable[[str], bool]
    kind: MediaKind


def _has_video_path(url: str) -> bool:
    return "/video/upload/" in url


def _has_video_extension(url: str) -> bool:
    return bool(_VIDEO_EXTENSION.search(url))


def _is_hosted_video(url: str) -> bool:
    lowered = url.lower()
    return "video" in lowered and any(host in lowered for host in VIDEO_HOSTS)


MEDIA_RULES: List[MediaRule] = [
    MediaRule("video_path_segment", _has_video_path, MediaKind.VIDEO),
    MediaRule("video_extension", _has_video_extension, MediaKind.VIDEO),
    MediaRule("hosted_video", _is_hosted_video, MediaKind.VIDEO),
]


def classify_kind(url: str, rules: Optional[Iterable[MediaRule]] = None) -> MediaKind:
    """Kind of the URL per the first matching rule; image otherwise."""
    for rule in MEDIA_RULES if rules is None else rules:
        try:
            if rule.matches(url):
                return rule.kind
        except Exception as e:  # a broken rule must not fail the row
            logger.warning(f"Media rule {rule.name} failed on {url!r}: {e}")
    return MediaKind.IMAGE


def delivery_url(url: str, kind: MediaKind) -> str:
    """
    Optimized URL for a card-sized rendition.

    Cloudinary upload URLs get a fixed-size, auto-quality transformation
    (center-cropped for images). Other hosts pass through unchanged.
    """
    if "res.cloudinary.com" not in url:
        return url
    parts = url.split("/upload/")
    if len(parts) != 2:
        return url

    head, tail = parts
    first_segment = tail.split("/", 1)[0]
    if _TRANSFORM_SEGMENT.match(first_segment):
        # Already transformed
        return url

    transform = CLOUDINARY_VIDEO_TRANSFORM if kind == MediaKind.VIDEO else CLOUDINARY_IMAGE_TRANSFORM
    return f"{head}/upload/{transform}/{tail}"


def classify(url: str) -> MediaItem:
    """Classify a URL and attach its delivery URL. Never raises."""
    url = (url or "").strip()
    kind = classify_kind(url)
    return MediaItem(kind=kind, url=url, delivery_url=delivery_url(url, kind))


def normalize_source_url(url: str) -> Optional[str]:
    """
    Usable URL for a raw photo-cell entry, or None to drop it.

    Google Drive share links become direct download links.
    """
    url = url.strip()
    if not url:
        return None
    if "drive.google.com" in url:
        match = _DRIVE_FILE_ID.search(url)
        if match:
            return f"https://drive.google.com/uc?id={match.group(1)}"
        if "uc?id=" in url or "open?id=" in url:
            return url
        return None
    if url.startswith("http"):
        return url
    return None


def split_media(cell) -> List[MediaItem]:
    """
    Classified media for a comma separated photo cell.

    Videos come first, then images; source order is kept within each kind.
    """
    if cell is None:
        return []
    if isinstance(cell, (list, tuple)):
        raw_urls = [str(u) for u in cell]
    else:
        raw_urls = str(cell).split(",")

    items = []
    for raw in raw_urls:
        url = normalize_source_url(raw)
        if url:
            items.append(classify(url))

    videos = [m for m in items if m.kind == MediaKind.VIDEO]
    images = [m for m in items if m.kind == MediaKind.IMAGE]
    return videos + images
