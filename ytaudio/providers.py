"""Upstream providers and the adapters that normalize their payloads.

Every provider is plain configuration: a fetch function bound to one
instance (or yt-dlp player client) and the adapter for that provider's
payload shape. The resolver consumes them uniformly.
"""
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, List, Optional

import httpx
import yt_dlp

from .credentials import Credentials
from .errors import AuthRequiredError, NotFoundError, UpstreamError
from .formats import AudioCandidate, Thumbnail, VideoPayload, to_int
from .video_id import watch_url

logger = logging.getLogger(__name__)

INVIDIOUS_FIELDS = 'videoId,title,author,lengthSeconds,videoThumbnails,adaptiveFormats'

# Substrings of yt-dlp DownloadError messages
AUTH_REQUIRED_MARKERS = (
    "Sign in to confirm you're not a bot",
    "Sign in to confirm your age",
    "age-restricted",
    "inappropriate for some users",
    "Private video",
    "members-only",
)
NOT_FOUND_MARKERS = (
    "Video unavailable",
    "This video has been removed",
    "This video is not available",
    "Incomplete YouTube ID",
)

THUMBNAIL_QUALITIES = {
    'maxresdefault': 'maxres',
    'sddefault': 'standard',
    'hqdefault': 'high',
    'mqdefault': 'medium',
    'default': 'default',
}


@dataclass(frozen=True)
class Provider:
    name: str
    source: str
    instance: str
    # Limit already bound into ``fetch`` (httpx timeout or yt-dlp socket_timeout).
    # A timeout raises inside fetch and counts as a provider failure.
    timeout: float
    fetch: Callable[[str], Any]
    adapt: Callable[[Any], VideoPayload]


# ---------- HTTP proxies ----------

def get_json(url: str, *, params: Optional[Dict[str, str]] = None, timeout: float = 10.0,
             user_agent: str = 'MusicPlayerApp/1.0',
             transport: Optional[httpx.BaseTransport] = None) -> Any:
    """GET a JSON document, turning every failure into an UpstreamError."""
    headers = {'Accept': 'application/json', 'User-Agent': user_agent}
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True, headers=headers,
                          transport=transport) as client:
            response = client.get(url, params=params)
    except httpx.TimeoutException:
        raise UpstreamError(f"Timed out after {timeout:g}s")
    except httpx.HTTPError as e:
        raise UpstreamError(f"{type(e).__name__}: {e}")

    if response.is_error:
        raise UpstreamError(f"HTTP {response.status_code}: {response.reason_phrase}")

    try:
        data = response.json()
    except ValueError:
        raise UpstreamError("Response was not valid JSON")

    if isinstance(data, dict) and data.get('error'):
        raise UpstreamError(str(data['error']))
    return data


def fetch_invidious(instance: str, video_id: str, **kwargs) -> Any:
    return get_json(f"{instance}/api/v1/videos/{video_id}",
                    params={'fields': INVIDIOUS_FIELDS}, **kwargs)


def fetch_piped(instance: str, video_id: str, **kwargs) -> Any:
    return get_json(f"{instance}/streams/{video_id}", **kwargs)


def adapt_invidious(data: Dict[str, Any], instance: str = '') -> VideoPayload:
    candidates = [
        AudioCandidate(
            url=fmt.get('url'),
            mime_type=fmt.get('type'),
            bitrate=to_int(fmt.get('bitrate')),
            content_length=to_int(fmt.get('clen')),
        )
        for fmt in data.get('adaptiveFormats') or []
        if 'audio' in (fmt.get('type') or '') and fmt.get('url')
    ]

    thumbnails = []
    for thumb in data.get('videoThumbnails') or []:
        url = thumb.get('url')
        if not url:
            continue
        if url.startswith('/'):
            url = f"{instance}{url}"
        thumbnails.append(Thumbnail(url=url, quality=thumb.get('quality')))

    return VideoPayload(
        title=data.get('title'),
        author=data.get('author'),
        duration_seconds=to_int(data.get('lengthSeconds')) or 0,
        thumbnails=thumbnails,
        audio_candidates=candidates,
    )


def adapt_piped(data: Dict[str, Any]) -> VideoPayload:
    candidates = [
        AudioCandidate(
            url=stream['url'],
            mime_type=stream.get('mimeType'),
            bitrate=to_int(stream.get('bitrate')),
            content_length=to_int(stream.get('contentLength')),
        )
        for stream in data.get('audioStreams') or []
        if stream.get('url')
    ]
    thumbnails = [Thumbnail(url=data['thumbnailUrl'])] if data.get('thumbnailUrl') else []

    return VideoPayload(
        title=data.get('title'),
        author=data.get('uploader'),
        duration_seconds=to_int(data.get('duration')) or 0,
        thumbnails=thumbnails,
        audio_candidates=candidates,
    )


# ---------- yt-dlp direct extraction ----------

def classify_download_error(message: str) -> Exception:
    message = message.replace('ERROR: ', '', 1).strip()
    if any(marker in message for marker in AUTH_REQUIRED_MARKERS):
        return AuthRequiredError(message)
    if any(marker in message for marker in NOT_FOUND_MARKERS):
        return NotFoundError(message)
    return UpstreamError(message)


def get_ytdlp_options(player_client: str, socket_timeout: float,
                      credentials: Optional[Credentials] = None) -> Dict[str, Any]:
    youtube_args = {
        'player_client': [player_client],
        'skip': ['dash', 'hls'],
    }
    if credentials:
        youtube_args.update(credentials.extractor_args())

    return {
        'quiet': True,
        'no_warnings': True,
        'skip_download': True,
        'noplaylist': True,
        'socket_timeout': socket_timeout,
        'extractor_args': {'youtube': youtube_args},
    }


def fetch_ytdlp(player_client: str, video_id: str, *, socket_timeout: float = 15.0,
                credentials: Optional[Credentials] = None) -> Dict[str, Any]:
    ydl_opts = get_ytdlp_options(player_client, socket_timeout, credentials)
    credentials = credentials or Credentials()

    with credentials.cookiefile() as cookiefile:
        if cookiefile:
            ydl_opts['cookiefile'] = cookiefile
        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(watch_url(video_id), download=False)
        except yt_dlp.utils.DownloadError as e:
            raise classify_download_error(str(e))

    if info is None:
        raise UpstreamError("Could not extract video information")
    return info


def _ytdlp_thumbnail_quality(url: str) -> Optional[str]:
    name = url.rsplit('/', 1)[-1].split('?', 1)[0].split('.', 1)[0]
    name = name.replace('_live', '')
    return THUMBNAIL_QUALITIES.get(name)


def adapt_ytdlp(info: Dict[str, Any]) -> VideoPayload:
    candidates = []
    for fmt in info.get('formats') or []:
        if fmt.get('vcodec') != 'none' or fmt.get('acodec') in (None, 'none') or not fmt.get('url'):
            continue
        ext = fmt.get('audio_ext') if fmt.get('audio_ext') not in (None, 'none') else fmt.get('ext')
        mime_type = f"audio/{ext}" if ext else None
        if mime_type and fmt.get('acodec'):
            mime_type = f'{mime_type}; codecs="{fmt["acodec"]}"'
        kbps = fmt.get('abr') or fmt.get('tbr')
        candidates.append(AudioCandidate(
            url=fmt['url'],
            mime_type=mime_type,
            bitrate=to_int(kbps * 1000) if kbps else None,
            content_length=to_int(fmt.get('filesize') or fmt.get('filesize_approx')),
        ))

    thumbnails = []
    if info.get('thumbnail'):
        thumbnails.append(Thumbnail(url=info['thumbnail'],
                                    quality=_ytdlp_thumbnail_quality(info['thumbnail'])))
    # yt-dlp lists thumbnails worst first
    for thumb in reversed(info.get('thumbnails') or []):
        url = thumb.get('url')
        if url and url != info.get('thumbnail'):
            thumbnails.append(Thumbnail(url=url, quality=_ytdlp_thumbnail_quality(url)))

    return VideoPayload(
        title=info.get('title'),
        author=info.get('uploader') or info.get('channel'),
        duration_seconds=to_int(info.get('duration')) or 0,
        thumbnails=thumbnails,
        audio_candidates=candidates,
    )


# ---------- provider chain ----------

def build_providers(settings, credentials: Optional[Credentials] = None,
                    transport: Optional[httpx.BaseTransport] = None) -> List[Provider]:
    """Expand the configured chain into the ordered provider list."""
    http_kwargs = {
        'timeout': settings.provider_timeout,
        'user_agent': settings.user_agent,
        'transport': transport,
    }
    providers = []

    for kind in settings.provider_chain:
        if kind == 'invidious':
            for instance in settings.invidious_instances:
                providers.append(Provider(
                    name=f"invidious:{instance}",
                    source='invidious',
                    instance=instance,
                    timeout=settings.provider_timeout,
                    fetch=partial(fetch_invidious, instance, **http_kwargs),
                    adapt=partial(adapt_invidious, instance=instance),
                ))
        elif kind == 'piped':
            for instance in settings.piped_instances:
                providers.append(Provider(
                    name=f"piped:{instance}",
                    source='piped',
                    instance=instance,
                    timeout=settings.provider_timeout,
                    fetch=partial(fetch_piped, instance, **http_kwargs),
                    adapt=adapt_piped,
                ))
        elif kind == 'ytdlp':
            for client in settings.ytdlp_clients:
                providers.append(Provider(
                    name=f"ytdlp:{client}",
                    source='ytdlp',
                    instance=client,
                    timeout=settings.ytdlp_socket_timeout,
                    fetch=partial(fetch_ytdlp, client,
                                  socket_timeout=settings.ytdlp_socket_timeout,
                                  credentials=credentials),
                    adapt=adapt_ytdlp,
                ))
        else:
            raise ValueError(f"Unknown provider kind: {kind}")

    return providers
