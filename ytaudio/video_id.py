import re
from typing import Optional

# Checked in order; the first pattern that matches wins.
VIDEO_ID_PATTERNS = [
    re.compile(r'youtube\.com/watch\?v=([^&\n?#]+)'),
    re.compile(r'youtu\.be/([^&\n?#]+)'),
    re.compile(r'youtube\.com/embed/([^&\n?#]+)'),
    re.compile(r'youtube\.com/v/([^&\n?#]+)'),
    re.compile(r'^([a-zA-Z0-9_-]{11})$'),  # bare video ID
]


def extract_video_id(url: str) -> Optional[str]:
    """Extract the video ID from a YouTube URL or a bare 11 character ID.

    Returns ``None`` when nothing matches. The token is not checked any
    further than the patterns above; an upstream 4xx is the real validation.
    """
    if not url:
        return None

    url = url.strip()
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"
