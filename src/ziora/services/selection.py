"""Random photo selection over the shared pool."""

import logging
import random
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from ziora.domain.gacha import (
    GachaPolicy,
    SelectionOutcome,
    SelectionRequest,
    SelectionSource,
)
from ziora.domain.photos import GachaScope, PhotoRecord, SampleDirection
from ziora.services.photos import PhotoRepository

logger = logging.getLogger(__name__)


@dataclass
class SelectionService:
    """Selects one unseen photo from the pool.

    A uniform seed is drawn and the pool is scanned around it on the
    ``random_seed`` index: first upward, then downward from the same pivot.
    Records owned by the requester or already excluded are skipped. When
    every sampled record is filtered out the seed is redrawn a few times
    before reporting that no candidate exists. Whether that means the pool
    is exhausted or empty is for the caller to decide.
    """

    repository: PhotoRepository
    policy: GachaPolicy = field(default_factory=GachaPolicy)
    rng: random.Random = field(default_factory=random.Random)

    def select_one(
        self,
        scope: GachaScope,
        excluded_owner_id: str | None,
        excluded_ids: Iterable[str],
    ) -> SelectionOutcome:
        """Return one eligible photo or a no-candidate outcome."""
        excluded = frozenset(excluded_ids)
        for attempt in range(self.policy.reseed_attempts + 1):
            seed = self.rng.random()
            photo = self._scan(seed, scope, excluded_owner_id, excluded)
            if photo is not None:
                return SelectionOutcome(photo=photo, source=SelectionSource.RANDOM)
            if attempt < self.policy.reseed_attempts:
                logger.debug(
                    "Gacha reseeding (%s/%s)", attempt + 1, self.policy.reseed_attempts
                )
        return SelectionOutcome.no_candidate()

    def select_fresh(
        self,
        since: datetime,
        scope: GachaScope,
        excluded_owner_id: str | None,
        excluded_ids: Iterable[str],
    ) -> SelectionOutcome:
        """Pick uniformly among recent photos created after ``since``."""
        excluded = frozenset(excluded_ids)
        recent = self.repository.recent_since(
            since, scope, self.policy.freshness_limit
        )
        candidates = [
            photo
            for photo in recent
            if _is_eligible(photo, scope, excluded_owner_id, excluded)
        ]
        if not candidates:
            return SelectionOutcome.no_candidate()
        logger.info("Fresh photo hit (candidates: %s)", len(candidates))
        return SelectionOutcome(
            photo=self.rng.choice(candidates), source=SelectionSource.FRESH
        )

    def select(
        self, request: SelectionRequest, last_reset_at: datetime | None = None
    ) -> SelectionOutcome:
        """Prefer fresh photos after a reset, otherwise draw at random."""
        if last_reset_at is not None:
            try:
                fresh = self.select_fresh(
                    last_reset_at,
                    request.scope,
                    request.excluded_owner_id,
                    request.excluded_ids,
                )
            except Exception:
                logger.exception("Fresh photo query failed; using random draw")
            else:
                if fresh.found:
                    return fresh
        return self.select_one(
            request.scope, request.excluded_owner_id, request.excluded_ids
        )

    def _scan(
        self,
        seed: float,
        scope: GachaScope,
        excluded_owner_id: str | None,
        excluded: frozenset[str],
    ) -> PhotoRecord | None:
        for direction in (SampleDirection.ASCENDING, SampleDirection.DESCENDING):
            batch = self.repository.sample_near(
                seed, scope, self.policy.sample_batch_size, direction
            )
            for photo in batch:
                if _is_eligible(photo, scope, excluded_owner_id, excluded):
                    return photo
        return None


def _is_eligible(
    photo: PhotoRecord,
    scope: GachaScope,
    excluded_owner_id: str | None,
    excluded: frozenset[str],
) -> bool:
    if not photo.is_active:
        return False
    if excluded_owner_id is not None and photo.owner_id == excluded_owner_id:
        return False
    if photo.id in excluded:
        return False
    return photo.matches(scope)
