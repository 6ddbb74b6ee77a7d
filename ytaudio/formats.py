"""Audio stream and thumbnail selection."""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .errors import NotFoundError

DEFAULT_THUMBNAIL = "https://img.youtube.com/vi/{video_id}/hqdefault.jpg"
THUMBNAIL_PREFERENCE = ("maxres", "high")


@dataclass(frozen=True)
class AudioCandidate:
    url: str
    mime_type: Optional[str] = None
    bitrate: Optional[int] = None
    content_length: Optional[int] = None


@dataclass(frozen=True)
class Thumbnail:
    url: str
    quality: Optional[str] = None


@dataclass
class VideoPayload:
    """Metadata from a single provider, already normalized by its adapter."""

    title: Optional[str]
    author: Optional[str]
    duration_seconds: int = 0
    thumbnails: List[Thumbnail] = field(default_factory=list)
    audio_candidates: List[AudioCandidate] = field(default_factory=list)


def select_best_audio(candidates: Sequence[AudioCandidate]) -> AudioCandidate:
    """Pick the highest bitrate candidate. Missing bitrate counts as 0.

    ``max`` keeps the first of equal elements, so ties go to whichever
    stream the provider listed first.
    """
    if not candidates:
        raise NotFoundError("No audio formats available for this video")
    return max(candidates, key=lambda c: c.bitrate or 0)


def select_thumbnail(thumbnails: Sequence[Thumbnail], video_id: str) -> str:
    for quality in THUMBNAIL_PREFERENCE:
        for thumb in thumbnails:
            if thumb.quality == quality and thumb.url:
                return thumb.url
    if thumbnails and thumbnails[0].url:
        return thumbnails[0].url
    return DEFAULT_THUMBNAIL.format(video_id=video_id)


def format_duration(seconds: Optional[int]) -> str:
    """Format seconds as ``m:ss``."""
    seconds = max(int(seconds or 0), 0)
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def to_int(value) -> Optional[int]:
    """Coerce the numeric strings some providers send into ints."""
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None
