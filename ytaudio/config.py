import os
from dataclasses import dataclass, field
from typing import List, Optional

# Public Invidious instances, ordered by reliability
DEFAULT_INVIDIOUS_INSTANCES = [
    'https://inv.nadeko.net',
    'https://invidious.nerdvpn.de',
    'https://invidious.private.coffee',
    'https://yt.artemislena.eu',
    'https://invidious.protokolla.fi',
    'https://iv.datura.network',
    'https://invidious.perennialte.ch',
    'https://inv.tux.pizza',
    'https://invidious.einfachzocken.eu',
    'https://inv.citw.lgbt',
]

DEFAULT_PIPED_INSTANCES = [
    'https://pipedapi.kavin.rocks',
    'https://pipedapi.r4fo.com',
    'https://api.piped.privacydev.net',
    'https://pipedapi.darkness.services',
]

DEFAULT_YTDLP_CLIENTS = ['android', 'ios', 'web']
PROVIDER_KINDS = ('invidious', 'piped', 'ytdlp')


def _split(value: Optional[str], default: List[str]) -> List[str]:
    if not value:
        return list(default)
    return [item.strip() for item in value.split(',') if item.strip()]


def _float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value else default
    except ValueError:
        return default


def _int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    provider_chain: List[str] = field(default_factory=lambda: list(PROVIDER_KINDS))
    invidious_instances: List[str] = field(default_factory=lambda: list(DEFAULT_INVIDIOUS_INSTANCES))
    piped_instances: List[str] = field(default_factory=lambda: list(DEFAULT_PIPED_INSTANCES))
    ytdlp_clients: List[str] = field(default_factory=lambda: list(DEFAULT_YTDLP_CLIENTS))
    provider_timeout: float = 10.0
    ytdlp_socket_timeout: float = 15.0
    youtube_cookies: Optional[str] = None
    po_token: Optional[str] = None
    visitor_data: Optional[str] = None
    user_agent: str = 'MusicPlayerApp/1.0'
    environment: str = 'production'
    log_level: str = 'INFO'
    host: str = '0.0.0.0'
    port: int = 3000

    @property
    def debug(self) -> bool:
        return self.environment == 'development'


def load_settings() -> Settings:
    """Read settings from the environment."""
    chain = [kind.lower() for kind in _split(os.getenv('PROVIDER_CHAIN'), list(PROVIDER_KINDS))]
    unknown = [kind for kind in chain if kind not in PROVIDER_KINDS]
    if unknown:
        raise ValueError(f"Unknown provider(s) in PROVIDER_CHAIN: {', '.join(unknown)}")

    return Settings(
        provider_chain=chain,
        invidious_instances=_split(os.getenv('INVIDIOUS_INSTANCES'), DEFAULT_INVIDIOUS_INSTANCES),
        piped_instances=_split(os.getenv('PIPED_INSTANCES'), DEFAULT_PIPED_INSTANCES),
        ytdlp_clients=_split(os.getenv('YTDLP_CLIENTS'), DEFAULT_YTDLP_CLIENTS),
        provider_timeout=_float(os.getenv('PROVIDER_TIMEOUT'), 10.0),
        ytdlp_socket_timeout=_float(os.getenv('YTDLP_SOCKET_TIMEOUT'), 15.0),
        youtube_cookies=os.getenv('YOUTUBE_COOKIES') or None,
        po_token=os.getenv('YOUTUBE_PO_TOKEN') or None,
        visitor_data=os.getenv('YOUTUBE_VISITOR_DATA') or None,
        user_agent=os.getenv('USER_AGENT', 'MusicPlayerApp/1.0'),
        environment=os.getenv('APP_ENV', 'production').lower(),
        log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        host=os.getenv('HOST', '0.0.0.0'),
        port=_int(os.getenv('PORT'), 3000),
    )
