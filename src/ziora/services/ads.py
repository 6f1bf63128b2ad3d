"""Ad interleaving policy and one-ahead ad prefetching."""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Protocol

from ziora.domain.gacha import AdCreative, GachaPolicy

logger = logging.getLogger(__name__)


class AdProvider(Protocol):
    """Interface for the ad SDK."""

    async def load_ad(self) -> AdCreative:
        """Request one ad creative; raises AdLoadError on failure."""


def should_show_ad(  # noqa: PLR0913
    spin_count: int,
    last_spin_was_ad: bool,
    last_ad_spin: int,
    ad_free: bool,
    policy: GachaPolicy,
    rng: random.Random,
) -> bool:
    """Decide whether a real spin shows an ad instead of a photo.

    ``spin_count`` is 1-based and counts real spins only; the tutorial
    spin is not included.
    """
    if ad_free:
        return False
    if last_spin_was_ad:
        return False
    if spin_count <= 1:
        return False
    if spin_count - last_ad_spin == 1:
        return False
    if spin_count % policy.ad_interval == 0:
        return True
    return rng.randint(1, policy.ad_chance) == 1


@dataclass
class AdPrefetcher:
    """Keeps one ad loading ahead of the next ad spin."""

    provider: AdProvider
    _next: asyncio.Task[AdCreative] | None = field(default=None, init=False)

    def prefetch(self, ad_free: bool = False) -> None:
        """Start loading the next ad unless one is loading or ready."""
        if ad_free:
            self.discard()
            return
        if self._next is not None:
            if not self._next.done() or _succeeded(self._next):
                return
            logger.info("Previous ad prefetch failed; retrying")
        self._next = asyncio.get_running_loop().create_task(self.provider.load_ad())

    async def take(self, ad_free: bool = False) -> AdCreative:
        """Return the prefetched ad, waiting for it if still loading.

        Falls back to loading one now when nothing was prefetched or the
        prefetch failed. Always starts prefetching the following ad.
        """
        pending, self._next = self._next, None
        ad: AdCreative | None = None
        if pending is not None:
            try:
                ad = await pending
            except Exception:
                logger.info("Ad prefetch failed; loading now", exc_info=True)
            else:
                logger.info("Showing prefetched ad")
        if ad is None:
            ad = await self.provider.load_ad()
        self.prefetch(ad_free)
        return ad

    def discard(self) -> None:
        """Drop any prefetched ad."""
        if self._next is not None and not self._next.done():
            self._next.cancel()
        self._next = None

    @property
    def ready(self) -> bool:
        return self._next is not None and self._next.done() and _succeeded(self._next)


def _succeeded(task: asyncio.Task[AdCreative]) -> bool:
    return not task.cancelled() and task.exception() is None
