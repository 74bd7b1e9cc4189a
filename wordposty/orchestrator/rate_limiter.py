"""In-memory sliding-window rate limiter keyed by service and client."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, TypeVar

from wordposty.config import settings
from wordposty.errors import RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_POLL_INTERVAL = 1.0  # seconds between retries in wait_for_limit


@dataclass
class RateLimitConfig:
    max_requests: int
    window_seconds: float
    service: str


def default_configs() -> dict[str, RateLimitConfig]:
    window = settings.rate_limit_window_seconds
    return {
        "research": RateLimitConfig(settings.research_rate_limit, window, "research"),
        "writer": RateLimitConfig(settings.writer_rate_limit, window, "writer"),
        "default": RateLimitConfig(settings.default_rate_limit, window, "default"),
    }


class RateLimiter:
    """Counts request timestamps per ``service:identifier`` key.

    Windows are pruned lazily on every check and fully swept by cleanup().
    Nothing is persisted; a restart starts every window empty.
    """

    def __init__(
        self,
        configs: dict[str, RateLimitConfig] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.configs = configs if configs is not None else default_configs()
        if "default" not in self.configs:
            self.configs["default"] = RateLimitConfig(100, 60.0, "default")
        self.clock = clock
        self._requests: dict[str, list[float]] = {}

    def config_for(self, service: str) -> RateLimitConfig:
        return self.configs.get(service) or self.configs["default"]

    def set_config(
        self,
        service: str,
        max_requests: int | None = None,
        window_seconds: float | None = None,
    ) -> RateLimitConfig:
        config = replace(self.config_for(service), service=service)
        if max_requests is not None:
            config.max_requests = max_requests
        if window_seconds is not None:
            config.window_seconds = window_seconds
        self.configs[service] = config
        return config

    def _live(self, key: str, config: RateLimitConfig, now: float) -> list[float]:
        return [ts for ts in self._requests.get(key, []) if now - ts < config.window_seconds]

    def check_limit(self, service: str, identifier: str = "default") -> bool:
        """Record a request and return True, or return False if the window is full."""
        config = self.config_for(service)
        key = f"{service}:{identifier}"
        now = self.clock()

        requests = self._live(key, config, now)
        if len(requests) >= config.max_requests:
            self._requests[key] = requests
            return False

        requests.append(now)
        self._requests[key] = requests
        return True

    async def wait_for_limit(
        self,
        service: str,
        identifier: str = "default",
        max_wait: float | None = None,
    ) -> None:
        """Block until a request slot opens, polling at most once per second."""
        config = self.config_for(service)
        key = f"{service}:{identifier}"
        waited = 0.0

        while not self.check_limit(service, identifier):
            requests = self._requests.get(key, [])
            if requests:
                delay = config.window_seconds - (self.clock() - requests[0])
                delay = min(max(delay, 0.0), MAX_POLL_INTERVAL)
            else:
                delay = MAX_POLL_INTERVAL

            if max_wait is not None and waited + delay > max_wait:
                raise RateLimitError(service, self._retry_after(service, identifier))

            logger.debug("Rate limited on %s, waiting %.2fs", key, delay)
            await asyncio.sleep(delay)
            waited += delay

    def remaining(self, service: str, identifier: str = "default") -> int:
        config = self.config_for(service)
        live = self._live(f"{service}:{identifier}", config, self.clock())
        return max(0, config.max_requests - len(live))

    def reset_time(self, service: str, identifier: str = "default") -> float | None:
        """Epoch seconds at which the oldest live request leaves the window."""
        config = self.config_for(service)
        live = self._live(f"{service}:{identifier}", config, self.clock())
        if not live:
            return None
        return live[0] + config.window_seconds

    def cleanup(self) -> None:
        """Drop expired timestamps and forget keys with empty windows."""
        now = self.clock()
        for key in list(self._requests):
            service = key.split(":", 1)[0]
            live = self._live(key, self.config_for(service), now)
            if live:
                self._requests[key] = live
            else:
                del self._requests[key]

    def _retry_after(self, service: str, identifier: str) -> int:
        reset = self.reset_time(service, identifier)
        if reset is None:
            return math.ceil(self.config_for(service).window_seconds)
        return max(1, math.ceil(reset - self.clock()))


async def with_rate_limit(
    limiter: RateLimiter,
    service: str,
    identifier: str,
    operation: Callable[[], Awaitable[T]],
) -> T:
    """Run *operation* if the caller has a free slot, else raise RateLimitError."""
    if not limiter.check_limit(service, identifier):
        reset = limiter.reset_time(service, identifier)
        wait = math.ceil(reset - limiter.clock()) if reset else 60
        logger.warning("Rate limit hit for %s:%s (retry in %ds)", service, identifier, wait)
        raise RateLimitError(service, wait)
    return await operation()


async def run_cleanup(limiter: RateLimiter, interval: float) -> None:
    """Sweep the limiter forever; run as a background task."""
    while True:
        await asyncio.sleep(interval)
        limiter.cleanup()
