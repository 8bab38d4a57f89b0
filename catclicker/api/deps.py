from __future__ import annotations

from collections.abc import Generator

import redis

from catclicker.catalog.registry import ProducerCatalog
from catclicker.catalog.singleton import get_catalog
from catclicker.clock import Clock, now_ms
from catclicker.infra.redis_client import create_redis


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        try:
            client.close()
        except Exception:
            # Some redis client versions don't require explicit close.
            pass


def get_producer_catalog() -> ProducerCatalog:
    return get_catalog()


def get_clock() -> Clock:
    return now_ms
