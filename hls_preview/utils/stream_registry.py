"""Track live upstream responses so shutdown can abort them."""

from __future__ import annotations

import logging
from typing import Set

import aiohttp


class StreamRegistry:
    """Set of upstream responses currently being proxied to clients."""

    def __init__(self) -> None:
        self._active: Set[aiohttp.ClientResponse] = set()

    def track(self, response: aiohttp.ClientResponse) -> None:
        self._active.add(response)

    def discard(self, response: aiohttp.ClientResponse) -> None:
        self._active.discard(response)

    def close_all(self) -> int:
        """Abort every tracked response and return how many there were."""

        count = len(self._active)
        for response in list(self._active):
            response.close()
        self._active.clear()
        if count:
            logging.info("Aborted %s active upstream stream(s)", count)
        return count

    def __len__(self) -> int:
        return len(self._active)
