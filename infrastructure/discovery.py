"""Broker discovery from a fixed candidate list.

Reports each configured candidate once (de-duplicated by ``host:port``) and
then signals a timeout after ``scan_timeout`` seconds unless stopped.
"""

import asyncio
import logging
from typing import Callable, Iterable, Optional, Set

from adapters.interfaces.discovery import DiscoveryServiceInterface
from modules.vitaband_mqtt.config import ConnectionTarget


logger = logging.getLogger(__name__)


class StaticDiscoveryService(DiscoveryServiceInterface):
    """Discovery over a known list of brokers (e.g. the last connected one)."""

    def __init__(self, candidates: Iterable[ConnectionTarget], scan_timeout: float = 30.0):
        self.candidates = list(candidates)
        self.scan_timeout = scan_timeout
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._found: Set[str] = set()

    @property
    def is_scanning(self) -> bool:
        return self._timeout_handle is not None

    def start_scan(
        self,
        on_found: Callable[[ConnectionTarget], None],
        on_timeout: Callable[[], None],
    ) -> None:
        self.stop_scan()
        self._found.clear()
        loop = asyncio.get_running_loop()

        for candidate in self.candidates:
            key = str(candidate)
            if key in self._found:
                continue
            self._found.add(key)
            logger.info(f"Broker candidate found: {key}")
            loop.call_soon(on_found, candidate)

        self._timeout_handle = loop.call_later(self.scan_timeout, self._on_timeout, on_timeout)

    def _on_timeout(self, on_timeout: Callable[[], None]) -> None:
        self._timeout_handle = None
        logger.info(f"Discovery finished, {len(self._found)} candidate(s)")
        on_timeout()

    def stop_scan(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
