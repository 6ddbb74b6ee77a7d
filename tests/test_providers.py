import httpx
import pytest

from ytaudio import providers as providers_module
from ytaudio.config import Settings
from ytaudio.credentials import Cookie, Credentials
from ytaudio.errors import AuthRequiredError, NotFoundError, UpstreamError
from ytaudio.providers import (
    adapt_invidious,
    adapt_piped,
    adapt_ytdlp,
    build_providers,
    classify_download_error,
    fetch_invidious,
    fetch_piped,
    fetch_ytdlp,
    get_json,
    get_ytdlp_options,
)

INVIDIOUS_PAYLOAD = {
    "videoId": "dQw4w9WgXcQ",
    "title": "Never Gonna Give You Up",
    "author": "Rick Astley",
    "lengthSeconds": 212,
    "videoThumbnails": [
        {"quality": "maxres", "url": "/vi/dQw4w9WgXcQ/maxres.jpg"},
        {"quality": "high", "url": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg"},
    ],
    "adaptiveFormats": [
        {"type": 'video/mp4; codecs="avc1.640028"', "url": "https://v/1", "bitrate": "2000000"},
        {"type": 'audio/mp4; codecs="mp4a.40.2"', "url": "https://a/140", "bitrate": "130000", "clen": "3433514"},
        {"type": 'audio/webm; codecs="opus"', "url": "https://a/251", "bitrate": "160000", "clen": "3437753"},
    ],
}

PIPED_PAYLOAD = {
    "title": "Never Gonna Give You Up",
    "uploader": "Rick Astley",
    "duration": 212,
    "thumbnailUrl": "https://pipedproxy/vi/dQw4w9WgXcQ/maxresdefault.jpg",
    "audioStreams": [
        {"url": "https://a/140", "mimeType": "audio/mp4", "bitrate": 130000},
        {"mimeType": "audio/webm", "bitrate": 999999},
        {"url": "https://a/251", "mimeType": "audio/webm", "bitrate": 160000, "contentLength": 3437753},
    ],
}

YTDLP_INFO = {
    "id": "dQw4w9WgXcQ",
    "title": "Never Gonna Give You Up",
    "uploader": "Rick Astley",
    "duration": 212,
    "thumbnail": "https://i.ytimg.com/vi_webp/dQw4w9WgXcQ/maxresdefault.webp",
    "thumbnails": [
        {"url": "https://i.ytimg.com/vi/dQw4w9WgXcQ/default.jpg"},
        {"url": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg?sqp=abc"},
        {"url": "https://i.ytimg.com/vi_webp/dQw4w9WgXcQ/maxresdefault.webp"},
    ],
    "formats": [
        {"format_id": "18", "ext": "mp4", "vcodec": "avc1", "acodec": "mp4a.40.2", "url": "https://v/18", "tbr": 500},
        {"format_id": "140", "ext": "m4a", "audio_ext": "m4a", "vcodec": "none", "acodec": "mp4a.40.2",
         "url": "https://a/140", "abr": 129.5, "filesize": 3433514},
        {"format_id": "251", "ext": "webm", "audio_ext": "webm", "vcodec": "none", "acodec": "opus",
         "url": "https://a/251", "abr": 135.2, "filesize_approx": 3437753},
        {"format_id": "sb0", "ext": "mhtml", "vcodec": "none", "acodec": "none", "url": "https://sb/0"},
    ],
}


def _transport(handler):
    return httpx.MockTransport(handler)


def test_get_json_returns_payload_and_sends_headers() -> None:
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["ua"] = request.headers["user-agent"]
        return httpx.Response(200, json={"ok": True})

    data = get_json("https://inv.example/api", params={"fields": "a"}, user_agent="Test/1.0",
                    transport=_transport(handler))

    assert data == {"ok": True}
    assert seen["url"] == "https://inv.example/api?fields=a"
    assert seen["ua"] == "Test/1.0"


@pytest.mark.parametrize(
    "response,message",
    [
        (httpx.Response(503), "HTTP 503: Service Unavailable"),
        (httpx.Response(200, json={"error": "This video is unavailable"}), "This video is unavailable"),
        (httpx.Response(200, text="<html>nope</html>"), "Response was not valid JSON"),
    ],
)
def test_get_json_failures_become_upstream_errors(response, message) -> None:
    with pytest.raises(UpstreamError) as excinfo:
        get_json("https://inv.example/api", transport=_transport(lambda request: response))
    assert excinfo.value.message == message


def test_get_json_timeout_is_upstream_error() -> None:
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamError) as excinfo:
        get_json("https://inv.example/api", timeout=10, transport=_transport(handler))
    assert excinfo.value.message == "Timed out after 10s"


def test_get_json_connection_error_is_upstream_error() -> None:
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError) as excinfo:
        get_json("https://inv.example/api", transport=_transport(handler))
    assert "ConnectError" in excinfo.value.message


def test_fetch_invidious_requests_video_endpoint() -> None:
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["fields"] = request.url.params["fields"]
        return httpx.Response(200, json=INVIDIOUS_PAYLOAD)

    data = fetch_invidious("https://inv.example", "dQw4w9WgXcQ", transport=_transport(handler))

    assert data["title"] == "Never Gonna Give You Up"
    assert seen["path"] == "/api/v1/videos/dQw4w9WgXcQ"
    assert "adaptiveFormats" in seen["fields"]


def test_fetch_piped_requests_streams_endpoint() -> None:
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        return httpx.Response(200, json=PIPED_PAYLOAD)

    fetch_piped("https://piped.example", "dQw4w9WgXcQ", transport=_transport(handler))
    assert seen["path"] == "/streams/dQw4w9WgXcQ"


def test_adapt_invidious_keeps_audio_only_and_coerces_numbers() -> None:
    payload = adapt_invidious(INVIDIOUS_PAYLOAD, instance="https://inv.example")

    assert payload.title == "Never Gonna Give You Up"
    assert payload.author == "Rick Astley"
    assert payload.duration_seconds == 212
    assert [c.url for c in payload.audio_candidates] == ["https://a/140", "https://a/251"]
    assert payload.audio_candidates[1].bitrate == 160000
    assert payload.audio_candidates[0].content_length == 3433514
    assert payload.thumbnails[0].url == "https://inv.example/vi/dQw4w9WgXcQ/maxres.jpg"
    assert payload.thumbnails[0].quality == "maxres"


def test_adapt_piped_requires_stream_url() -> None:
    payload = adapt_piped(PIPED_PAYLOAD)

    assert payload.author == "Rick Astley"
    assert [c.url for c in payload.audio_candidates] == ["https://a/140", "https://a/251"]
    assert payload.audio_candidates[1].content_length == 3437753
    assert payload.thumbnails[0].url == PIPED_PAYLOAD["thumbnailUrl"]


def test_adapt_ytdlp_filters_audio_formats_and_maps_thumbnails() -> None:
    payload = adapt_ytdlp(YTDLP_INFO)

    assert [c.url for c in payload.audio_candidates] == ["https://a/140", "https://a/251"]
    assert payload.audio_candidates[0].mime_type == 'audio/m4a; codecs="mp4a.40.2"'
    assert payload.audio_candidates[0].bitrate == 129500
    assert payload.audio_candidates[1].content_length == 3437753
    assert payload.thumbnails[0].quality == "maxres"
    assert [t.quality for t in payload.thumbnails[1:]] == ["high", "default"]


def test_adapt_handles_missing_fields() -> None:
    for adapt in (adapt_invidious, adapt_piped, adapt_ytdlp):
        payload = adapt({})
        assert payload.title is None
        assert payload.audio_candidates == []
        assert payload.duration_seconds == 0


@pytest.mark.parametrize(
    "message,error_type",
    [
        ("ERROR: [youtube] abc: Sign in to confirm you're not a bot. Use --cookies", AuthRequiredError),
        ("ERROR: [youtube] abc: Sign in to confirm your age. This video may be inappropriate", AuthRequiredError),
        ("ERROR: [youtube] abc: Private video. Sign in if you've been granted access", AuthRequiredError),
        ("ERROR: [youtube] abc: Video unavailable", NotFoundError),
        ("ERROR: [youtube] abc: Requested format is not available", UpstreamError),
    ],
)
def test_classify_download_error(message, error_type) -> None:
    error = classify_download_error(message)
    assert type(error) is error_type
    assert not error.message.startswith("ERROR:")


def test_get_ytdlp_options_forwards_tokens() -> None:
    credentials = Credentials(po_token="TOKEN", visitor_data="VISITOR")
    opts = get_ytdlp_options("web", 15.0, credentials)

    youtube_args = opts["extractor_args"]["youtube"]
    assert youtube_args["player_client"] == ["web"]
    assert youtube_args["po_token"] == ["web+TOKEN"]
    assert youtube_args["visitor_data"] == ["VISITOR"]
    assert opts["socket_timeout"] == 15.0


class _FakeYoutubeDL:
    instances: list = []

    def __init__(self, opts):
        self.opts = opts
        self.cookie_text = None
        _FakeYoutubeDL.instances.append(self)

    def __enter__(self):
        if self.opts.get("cookiefile"):
            with open(self.opts["cookiefile"]) as fh:
                self.cookie_text = fh.read()
        return self

    def __exit__(self, *exc):
        return False

    def extract_info(self, url, download=False):
        assert download is False
        self.url = url
        return YTDLP_INFO


def test_fetch_ytdlp_uses_cookiefile(monkeypatch) -> None:
    _FakeYoutubeDL.instances = []
    monkeypatch.setattr(providers_module.yt_dlp, "YoutubeDL", _FakeYoutubeDL)
    credentials = Credentials(cookies=[Cookie(name="SID", value="abc")])

    info = fetch_ytdlp("android", "dQw4w9WgXcQ", credentials=credentials)

    ydl = _FakeYoutubeDL.instances[0]
    assert info is YTDLP_INFO
    assert ydl.url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    assert "\tSID\tabc" in ydl.cookie_text
    assert ydl.opts["extractor_args"]["youtube"]["player_client"] == ["android"]


def test_fetch_ytdlp_classifies_download_errors(monkeypatch) -> None:
    class _Blocked(_FakeYoutubeDL):
        def extract_info(self, url, download=False):
            raise providers_module.yt_dlp.utils.DownloadError("ERROR: Sign in to confirm you're not a bot")

    monkeypatch.setattr(providers_module.yt_dlp, "YoutubeDL", _Blocked)

    with pytest.raises(AuthRequiredError):
        fetch_ytdlp("ios", "dQw4w9WgXcQ")


def test_fetch_ytdlp_none_info_is_upstream_error(monkeypatch) -> None:
    class _Empty(_FakeYoutubeDL):
        def extract_info(self, url, download=False):
            return None

    monkeypatch.setattr(providers_module.yt_dlp, "YoutubeDL", _Empty)

    with pytest.raises(UpstreamError):
        fetch_ytdlp("web", "dQw4w9WgXcQ")


def test_build_providers_follows_configured_chain() -> None:
    settings = Settings(
        provider_chain=["piped", "invidious", "ytdlp"],
        invidious_instances=["https://inv.a", "https://inv.b"],
        piped_instances=["https://piped.a"],
        ytdlp_clients=["android", "web"],
    )

    providers = build_providers(settings)

    assert [p.name for p in providers] == [
        "piped:https://piped.a",
        "invidious:https://inv.a",
        "invidious:https://inv.b",
        "ytdlp:android",
        "ytdlp:web",
    ]
    assert providers[-1].timeout == settings.ytdlp_socket_timeout


def test_build_providers_binds_transport() -> None:
    def handler(request):
        return httpx.Response(200, json=INVIDIOUS_PAYLOAD)

    settings = Settings(provider_chain=["invidious"], invidious_instances=["https://inv.a"])
    provider = build_providers(settings, transport=_transport(handler))[0]

    payload = provider.adapt(provider.fetch("dQw4w9WgXcQ"))
    assert payload.title == "Never Gonna Give You Up"
    assert payload.thumbnails[0].url == "https://inv.a/vi/dQw4w9WgXcQ/maxres.jpg"
