"""AWS client factory."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from aws_netsec_compliance.config import Settings, load_settings
from aws_netsec_compliance.errors import ConfigurationError

ClientCacheKey = tuple[str, ...]

_CLIENT_CACHE: OrderedDict[ClientCacheKey, tuple[object, float]] = OrderedDict()
_CLIENT_CACHE_LOCK = threading.Lock()
_CLIENT_TTL_SECONDS = 3600  # 1 hour
_CLIENT_CACHE_MAX_SIZE = 32


def _get_cached_client(
    key: ClientCacheKey,
    build_client: Callable[[], object],
) -> object:
    now = time.monotonic()
    with _CLIENT_CACHE_LOCK:
        cached = _CLIENT_CACHE.get(key)
        if cached is not None:
            client, created_at = cached
            if now - created_at < _CLIENT_TTL_SECONDS:
                _CLIENT_CACHE.move_to_end(key)
                return client
            del _CLIENT_CACHE[key]
        client = build_client()
        _CLIENT_CACHE[key] = (client, now)
        while len(_CLIENT_CACHE) > _CLIENT_CACHE_MAX_SIZE:
            _CLIENT_CACHE.popitem(last=False)
        return client


def get_client(
    service: str,
    region: str | None = None,
    profile: str | None = None,
    settings: Settings | None = None,
):
    """Return a cached boto3 client, raising ConfigurationError if no session can be built."""
    settings = settings or load_settings()
    resolved_region = region or settings.aws.default_region
    resolved_profile = profile or settings.aws.default_profile
    key = ("profile", service, resolved_region or "", resolved_profile or "")
    try:
        return _get_cached_client(
            key,
            lambda: _create_client(service, resolved_region, resolved_profile, settings),
        )
    except (BotoCoreError, ClientError) as exc:
        raise ConfigurationError(f"unable to load SDK config for {service}: {exc}") from exc


def _create_client(
    service: str,
    region: str | None,
    profile: str | None,
    settings: Settings,
):
    session = boto3.Session(profile_name=profile, region_name=region)
    return session.client(service, config=_get_service_config(settings))


def _get_service_config(settings: Settings) -> Config:
    return Config(
        read_timeout=settings.execution.sdk_timeout_seconds,
        connect_timeout=settings.execution.sdk_timeout_seconds,
        retries={"max_attempts": settings.execution.max_retries, "mode": "standard"},
    )
