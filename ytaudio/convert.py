import logging
from typing import Optional

import httpx

from .config import Settings
from .credentials import load_credentials
from .errors import ValidationError
from .providers import build_providers
from .resolver import resolve
from .response import ResolvedResult, build_result
from .video_id import extract_video_id

logger = logging.getLogger(__name__)

MISSING_URL = 'Missing required parameter: url'
INVALID_URL = 'Invalid YouTube URL format'


def convert(url: Optional[str], settings: Settings,
            transport: Optional[httpx.BaseTransport] = None) -> ResolvedResult:
    """Resolve a YouTube URL or video ID to an audio stream and its metadata."""
    if not url:
        raise ValidationError(MISSING_URL)

    video_id = extract_video_id(url)
    if not video_id:
        raise ValidationError(INVALID_URL)

    providers = build_providers(settings, load_credentials(settings), transport=transport)
    logger.info(f"Resolving {video_id} across {len(providers)} providers")
    resolution = resolve(video_id, providers)
    return build_result(video_id, resolution)
