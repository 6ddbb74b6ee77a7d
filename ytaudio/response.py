from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .formats import format_duration, select_best_audio, select_thumbnail
from .resolver import Resolution

UNKNOWN_AUTHOR = 'Unknown Artist'
UNKNOWN_TITLE = 'Unknown Title'


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AudioFormat(_CamelModel):
    mime_type: Optional[str] = Field(None, alias='mimeType')
    bitrate: Optional[int] = None
    content_length: Optional[int] = Field(None, alias='contentLength')


class Provenance(_CamelModel):
    source: str
    instance: str


class ResolvedResult(_CamelModel):
    video_id: str = Field(alias='videoId')
    title: str
    author: str
    thumbnail: str
    duration: int
    duration_formatted: str = Field(alias='durationFormatted')
    audio_url: str = Field(alias='audioUrl')
    audio_format: AudioFormat = Field(alias='audioFormat')
    provenance: Optional[Provenance] = None

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ConvertRequest(BaseModel):
    url: Optional[str] = None


def build_result(video_id: str, resolution: Resolution) -> ResolvedResult:
    """Map one provider's payload onto the provider-agnostic result.

    Raises NotFoundError when the provider listed no audio streams.
    """
    payload = resolution.payload
    audio = select_best_audio(payload.audio_candidates)
    duration = payload.duration_seconds or 0

    return ResolvedResult(
        video_id=video_id,
        title=payload.title or UNKNOWN_TITLE,
        author=payload.author or UNKNOWN_AUTHOR,
        thumbnail=select_thumbnail(payload.thumbnails, video_id),
        duration=duration,
        duration_formatted=format_duration(duration),
        audio_url=audio.url,
        audio_format=AudioFormat(
            mime_type=audio.mime_type,
            bitrate=audio.bitrate,
            content_length=audio.content_length,
        ),
        provenance=Provenance(
            source=resolution.provider.source,
            instance=resolution.provider.instance,
        ),
    )


def success_body(result: ResolvedResult) -> Dict[str, Any]:
    return {'success': True, 'data': result.to_json()}


def error_body(message: str, details: Any = None, debug: bool = False) -> Dict[str, Any]:
    body = {'success': False, 'error': message}
    if debug and details is not None:
        body['details'] = details
    return body
