"""Ranked fallback across upstream providers.

Providers are tried strictly in order, once each. The first one that
returns a usable payload wins and no further providers are contacted.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .errors import AuthRequiredError, ExhaustionError, NotFoundError
from .formats import VideoPayload
from .providers import Provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderResponse:
    ok: bool
    provider: Provider
    payload: Optional[VideoPayload] = None
    error: Optional[Exception] = None

    @property
    def message(self) -> str:
        return str(self.error) if self.error else ''


@dataclass(frozen=True)
class Resolution:
    provider: Provider
    payload: VideoPayload


def attempt(provider: Provider, video_id: str) -> ProviderResponse:
    try:
        raw = provider.fetch(video_id)
        payload = provider.adapt(raw)
    except Exception as e:
        return ProviderResponse(ok=False, provider=provider, error=e)
    return ProviderResponse(ok=True, provider=provider, payload=payload)


def _exhausted(failures: List[ProviderResponse]) -> Exception:
    details = [{'provider': f.provider.name, 'error': f.message} for f in failures]
    errors = [f.error for f in failures]

    if errors and all(isinstance(e, AuthRequiredError) for e in errors):
        return AuthRequiredError(details=details)
    if errors and all(isinstance(e, NotFoundError) for e in errors):
        return NotFoundError(details=details)
    return ExhaustionError(details=details)


def resolve(video_id: str, providers: Sequence[Provider]) -> Resolution:
    """Return the first provider that resolves ``video_id``.

    Raises ExhaustionError (or AuthRequiredError / NotFoundError when every
    provider failed for that same reason) whose ``details`` list one entry
    per provider, in call order.
    """
    failures = []

    for provider in providers:
        logger.info(f"Trying provider: {provider.name} (timeout {provider.timeout:g}s)")
        response = attempt(provider, video_id)

        if response.ok:
            logger.info(f"Success with provider: {provider.name}")
            return Resolution(provider=provider, payload=response.payload)

        failures.append(response)
        logger.warning(f"Failed with {provider.name}: {response.message}")

    logger.error(f"All {len(failures)} providers failed for {video_id}")
    raise _exhausted(failures)
