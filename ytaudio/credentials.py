"""Optional YouTube credentials forwarded to yt-dlp.

``YOUTUBE_COOKIES`` may hold a JSON export (a list of cookie objects as
written by browser extensions, or a plain ``{"name": "value"}`` object), the
text of a Netscape ``cookies.txt`` file, or a raw ``Cookie`` header string.
"""
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .formats import to_int

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN = '.youtube.com'


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str
    domain: str = DEFAULT_DOMAIN
    path: str = '/'
    secure: bool = True
    expires: int = 0

    def netscape_line(self) -> str:
        include_subdomains = 'TRUE' if self.domain.startswith('.') else 'FALSE'
        secure = 'TRUE' if self.secure else 'FALSE'
        return '\t'.join([
            self.domain, include_subdomains, self.path, secure,
            str(self.expires), self.name, self.value,
        ])


@dataclass(frozen=True)
class Credentials:
    cookies: List[Cookie] = field(default_factory=list)
    po_token: Optional[str] = None
    visitor_data: Optional[str] = None

    def __bool__(self) -> bool:
        return bool(self.cookies or self.po_token or self.visitor_data)

    def netscape_text(self) -> str:
        lines = ['# Netscape HTTP Cookie File']
        lines.extend(cookie.netscape_line() for cookie in self.cookies)
        return '\n'.join(lines) + '\n'

    def extractor_args(self) -> Dict[str, List[str]]:
        """yt-dlp ``extractor_args['youtube']`` entries for the token pair."""
        args = {}
        if self.po_token:
            token = self.po_token
            if '+' not in token:
                token = f'web+{token}'
            args['po_token'] = [token]
        if self.visitor_data:
            args['visitor_data'] = [self.visitor_data]
        return args

    @contextmanager
    def cookiefile(self) -> Iterator[Optional[str]]:
        """Write the cookies to a temporary file for the lifetime of one call."""
        if not self.cookies:
            yield None
            return

        fd, path = tempfile.mkstemp(prefix='ytaudio-cookies-', suffix='.txt')
        try:
            with os.fdopen(fd, 'w') as fh:
                fh.write(self.netscape_text())
            yield path
        finally:
            try:
                os.remove(path)
            except OSError as e:
                logger.warning(f"Could not remove cookie file {path}: {e}")


def _cookie_from_json(item: Dict[str, Any]) -> Optional[Cookie]:
    name = item.get('name')
    if not name:
        return None
    expires = to_int(item.get('expirationDate') or item.get('expires')) or 0
    return Cookie(
        name=str(name),
        value=str(item.get('value', '')),
        domain=item.get('domain') or DEFAULT_DOMAIN,
        path=item.get('path') or '/',
        secure=bool(item.get('secure', True)),
        expires=expires,
    )


def _parse_netscape(text: str) -> List[Cookie]:
    cookies = []
    for line in text.splitlines():
        line = line.strip()
        if line.startswith('#HttpOnly_'):
            line = line[len('#HttpOnly_'):]
        if not line or line.startswith('#'):
            continue
        parts = line.split('\t')
        if len(parts) != 7:
            continue
        domain, _, path, secure, expires, name, value = parts
        cookies.append(Cookie(
            name=name, value=value, domain=domain, path=path,
            secure=secure.upper() == 'TRUE',
            expires=int(expires) if expires.isdigit() else 0,
        ))
    return cookies


def _parse_header(text: str) -> List[Cookie]:
    cookies = []
    for pair in text.split(';'):
        if '=' not in pair:
            continue
        name, value = pair.split('=', 1)
        if name.strip():
            cookies.append(Cookie(name=name.strip(), value=value.strip()))
    return cookies


def parse_cookies(raw: Optional[str]) -> List[Cookie]:
    """Parse a cookie credential, trying JSON first and raw text second."""
    if not raw or not raw.strip():
        return []

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, list):
        cookies = [_cookie_from_json(item) for item in data if isinstance(item, dict)]
        return [cookie for cookie in cookies if cookie is not None]
    if isinstance(data, dict):
        return [Cookie(name=str(k), value=str(v)) for k, v in data.items()]

    if '\t' in raw:
        return _parse_netscape(raw)
    return _parse_header(raw)


def load_credentials(settings) -> Credentials:
    cookies = parse_cookies(settings.youtube_cookies)
    if settings.youtube_cookies and not cookies:
        logger.warning("YOUTUBE_COOKIES is set but no cookies could be parsed from it")
    return Credentials(
        cookies=cookies,
        po_token=settings.po_token,
        visitor_data=settings.visitor_data,
    )
