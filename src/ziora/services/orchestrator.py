"""Per-device gacha state machine."""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from ziora.domain.errors import PhotoNotFoundError
from ziora.domain.gacha import (
    DeviceState,
    GachaPolicy,
    GachaResult,
    OrchestratorState,
    ResultKind,
    SelectionOutcome,
    SelectionRequest,
    tutorial_photo,
)
from ziora.domain.photos import GachaScope, PhotoRecord, thumbnail_ref
from ziora.services.ads import AdPrefetcher, should_show_ad
from ziora.services.device_state import DeviceStateStore

logger = logging.getLogger(__name__)


class GachaClient(Protocol):
    """Interface to the selection backend."""

    async def select(
        self, request: SelectionRequest, last_reset_at: datetime | None
    ) -> SelectionOutcome:
        """Run one selection; raises on infrastructure failure."""

    async def record_impression(self, photo_id: str) -> None:
        """Count one presentation of a photo."""


class ImageClient(Protocol):
    """Interface to the image blob store."""

    async def download(self, image_ref: str) -> bytes:
        """Return image bytes; raises PhotoNotFoundError when missing."""


class CardSignal:
    """One-shot cue from the presentation layer that the card may reveal."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def trigger(self) -> None:
        """Mark the reveal animation as ready."""
        self._event.set()

    def reset(self) -> None:
        """Re-arm the signal for a new spin."""
        self._event = asyncio.Event()

    @property
    def received(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: float | None) -> bool:
        """Wait for the cue; returns False when the timeout expired."""
        if timeout is None:
            await self._event.wait()
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except TimeoutError:
            return False
        return True


@dataclass(frozen=True)
class _Candidate:
    photo: PhotoRecord
    scope: GachaScope
    image: bytes | None = None


_STATE_FOR_RESULT = {
    ResultKind.TUTORIAL: OrchestratorState.PRESENTING_PHOTO,
    ResultKind.PHOTO: OrchestratorState.PRESENTING_PHOTO,
    ResultKind.AD: OrchestratorState.PRESENTING_AD,
    ResultKind.COMPLETION: OrchestratorState.COMPLETION,
}


@dataclass
class GachaOrchestrator:
    """Drives selection for one device and decides what to reveal.

    Only one spin runs at a time. A spin either shows the pinned tutorial
    photo, an ad, an unseen photo or the completion card; failures in the
    selection flow never surface as errors and degrade to an ad instead.
    """

    gacha_client: GachaClient
    image_client: ImageClient
    ads: AdPrefetcher
    state_store: DeviceStateStore
    card_signal: CardSignal = field(default_factory=CardSignal)
    policy: GachaPolicy = field(default_factory=GachaPolicy)
    rng: random.Random = field(default_factory=random.Random)
    record_impressions: bool = True

    state: OrchestratorState = field(default=OrchestratorState.IDLE, init=False)
    loading: bool = field(default=False, init=False)
    retry_count: int = field(default=0, init=False)
    spin_count: int = field(default=0, init=False)
    _last_ad_spin: int = field(default=-100, init=False)
    _device: DeviceState = field(init=False)
    _preloaded: _Candidate | None = field(default=None, init=False)
    _preload_task: asyncio.Task[None] | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self._device = self.state_store.load()

    @property
    def seen_ids(self) -> frozenset[str]:
        return frozenset(self._device.seen_ids)

    @property
    def last_reset_at(self) -> datetime | None:
        return self._device.last_reset_at

    def trigger_card_display(self) -> None:
        """Called by the presentation layer when the card animation is ready."""
        self.card_signal.trigger()

    async def request_gacha(
        self,
        owner_id: str | None,
        scope: GachaScope | None = None,
        ad_free: bool = False,
    ) -> GachaResult | None:
        """Run one spin; returns None when a spin is already in flight."""
        if self.loading:
            logger.debug("Gacha already in flight; ignoring request")
            return None
        self.loading = True
        self.state = OrchestratorState.SELECTING
        self.ads.prefetch(ad_free)
        self.retry_count = 0
        self.card_signal.reset()
        try:
            result = await self._spin(owner_id, scope or GachaScope.global_(), ad_free)
        except Exception:
            logger.exception("Gacha failed (suppressed); showing fallback ad")
            result = await self._present_ad(ad_free)
        finally:
            self.loading = False
        self.state = _STATE_FOR_RESULT[result.kind]
        return result

    def reset_seen_history(self) -> None:
        """Forget every seen photo and prefer photos uploaded from now on."""
        self._device.seen_ids = set()
        self._device.last_reset_at = datetime.now(tz=UTC)
        self._persist()
        self._drop_preload()
        if self.state is OrchestratorState.COMPLETION:
            self.state = OrchestratorState.IDLE

    async def wait_for_preload(self) -> None:
        """Wait until a running background preload has finished."""
        if self._preload_task is not None:
            await asyncio.gather(self._preload_task, return_exceptions=True)

    def _drop_preload(self) -> None:
        if self._preload_task is not None and not self._preload_task.done():
            self._preload_task.cancel()
        self._preload_task = None
        self._preloaded = None

    async def _spin(
        self, owner_id: str | None, scope: GachaScope, ad_free: bool
    ) -> GachaResult:
        if not self._device.tutorial_completed:
            return await self._present_tutorial()

        self.spin_count += 1
        show_ad = should_show_ad(
            spin_count=self.spin_count,
            last_spin_was_ad=self._device.last_spin_was_ad,
            last_ad_spin=self._last_ad_spin,
            ad_free=ad_free,
            policy=self.policy,
            rng=self.rng,
        )
        self._device.last_spin_was_ad = show_ad
        self._persist()
        if show_ad:
            self._last_ad_spin = self.spin_count
            return await self._present_ad(ad_free)

        for attempt in range(self.policy.max_attempts):
            self.retry_count = attempt
            try:
                candidate = await self._next_candidate(
                    owner_id, scope, use_preload=attempt == 0
                )
            except Exception:
                logger.warning("Selection failed (suppressed); showing fallback ad")
                return await self._present_ad(ad_free)

            if candidate is None:
                if self._device.seen_ids:
                    return await self._present_completion()
                logger.warning("No photos found (suppressed); showing fallback ad")
                return await self._present_ad(ad_free)

            try:
                image = candidate.image or await self._download(candidate.photo)
            except PhotoNotFoundError:
                logger.warning("Locally ignoring broken photo: %s", candidate.photo.id)
                self._mark_seen(candidate.photo.id)
                self.retry_count = attempt + 1
                continue
            except Exception:
                logger.warning("Image fetch failed (suppressed); showing fallback ad")
                return await self._present_ad(ad_free)

            self._mark_seen(candidate.photo.id)
            await self._wait_for_card()
            await self._bump_impression(candidate.photo)
            self._schedule_preload(owner_id, scope)
            return GachaResult(
                kind=ResultKind.PHOTO, photo=candidate.photo, image=image
            )

        logger.warning("Max retries reached; showing fallback ad")
        return await self._present_ad(ad_free)

    async def _next_candidate(
        self, owner_id: str | None, scope: GachaScope, use_preload: bool
    ) -> _Candidate | None:
        if use_preload:
            # Selections from one device never overlap.
            await self.wait_for_preload()
            preloaded, self._preloaded = self._preloaded, None
            if preloaded is not None:
                if (
                    preloaded.photo.id not in self._device.seen_ids
                    and preloaded.scope == scope
                ):
                    logger.info("Using preloaded photo %s", preloaded.photo.id)
                    return preloaded
                logger.info("Preloaded photo no longer eligible; fetching fresh")
        outcome = await self.gacha_client.select(
            self._request(owner_id, scope), self._device.last_reset_at
        )
        if outcome.photo is None:
            return None
        return _Candidate(photo=outcome.photo, scope=scope)

    def _request(self, owner_id: str | None, scope: GachaScope) -> SelectionRequest:
        return SelectionRequest(
            scope=scope,
            excluded_owner_id=owner_id,
            excluded_ids=frozenset(self._device.seen_ids),
            retry_count=self.retry_count,
        )

    async def _download(self, photo: PhotoRecord) -> bytes:
        try:
            return await self.image_client.download(thumbnail_ref(photo.image_ref))
        except PhotoNotFoundError:
            logger.debug("Thumbnail fallback to original: %s", photo.image_ref)
        return await self.image_client.download(photo.image_ref)

    def _schedule_preload(self, owner_id: str | None, scope: GachaScope) -> None:
        if self._preloaded is not None:
            return
        if self._preload_task is not None and not self._preload_task.done():
            return
        self._preload_task = asyncio.get_running_loop().create_task(
            self._preload(owner_id, scope)
        )

    async def _preload(self, owner_id: str | None, scope: GachaScope) -> None:
        try:
            outcome = await self.gacha_client.select(
                self._request(owner_id, scope), self._device.last_reset_at
            )
            if outcome.photo is None:
                return
            image = await self._download(outcome.photo)
        except PhotoNotFoundError as exc:
            logger.info("Preload hit a broken photo: %s", exc.photo_ref)
            return
        except Exception:
            logger.warning("Preload failed", exc_info=True)
            return
        if asyncio.current_task() is not self._preload_task:
            return
        self._preloaded = _Candidate(photo=outcome.photo, scope=scope, image=image)
        logger.info("Gacha preloaded: %s", outcome.photo.id)

    async def _present_tutorial(self) -> GachaResult:
        logger.info("Tutorial spin: pinned photo")
        await self._wait_for_card()
        self._device.tutorial_completed = True
        self._persist()
        return GachaResult(kind=ResultKind.TUTORIAL, photo=tutorial_photo())

    async def _present_ad(self, ad_free: bool) -> GachaResult:
        try:
            ad = await self.ads.take(ad_free)
        except Exception:
            logger.warning("Ad load failed; revealing empty ad card", exc_info=True)
            ad = None
        await self._wait_for_card()
        return GachaResult(kind=ResultKind.AD, ad=ad)

    async def _present_completion(self) -> GachaResult:
        logger.info("Every photo has been seen; showing completion")
        await self._wait_for_card()
        return GachaResult(kind=ResultKind.COMPLETION)

    async def _wait_for_card(self) -> None:
        received = await self.card_signal.wait(self.policy.card_signal_timeout_seconds)
        if not received:
            logger.warning("Card signal timed out; revealing anyway")

    async def _bump_impression(self, photo: PhotoRecord) -> None:
        if not self.record_impressions:
            return
        try:
            await self.gacha_client.record_impression(photo.id)
        except Exception:
            logger.warning("Impression not recorded for %s", photo.id, exc_info=True)

    def _mark_seen(self, photo_id: str) -> None:
        self._device.seen_ids.add(photo_id)
        self._persist()

    def _persist(self) -> None:
        self.state_store.save(self._device)
