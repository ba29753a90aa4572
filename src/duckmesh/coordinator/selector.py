"""
Provider Selection

Picks providers for a job from an immutable ledger snapshot.

Single-provider modes rank eligible providers by reputation and stake
with a small random jitter as tie-breaker. Redundant mode takes the top
providers by reputation * stake. Selection never raises and never
mutates its inputs.
"""

import logging
import time
from typing import Callable, List, Optional, Sequence

import numpy as np

from duckmesh.config import SelectionConfig
from duckmesh.core.models import Job, Provider

logger = logging.getLogger(__name__)


class ProviderSelector:
    """
    Scores and selects providers.

    The jitter is drawn from an injectable numpy Generator. Without a seed
    the tie-break between near-equal providers is intentionally
    non-deterministic; tests pass a seeded generator to pin the ordering.
    """

    def __init__(
        self,
        config: Optional[SelectionConfig] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the selector.

        Args:
            config: Selection tuning (uses defaults if None)
            rng: Source of jitter; seeded from config.seed if None
            clock: Returns current unix time in seconds
        """
        self.config = config or SelectionConfig()
        self._rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self._clock = clock

    def is_eligible(self, provider: Provider, now: Optional[float] = None) -> bool:
        """Active and heartbeat seen within the window."""
        if now is None:
            now = self._clock()
        return (
            provider.is_active
            and now - provider.last_heartbeat < self.config.heartbeat_window_s
        )

    def base_score(self, provider: Provider) -> float:
        """Reputation/stake score without jitter."""
        reputation_score = provider.reputation / 100
        stake_score = min(
            provider.staked_amount / self.config.stake_normalizer,
            self.config.max_stake_multiplier,
        )
        return reputation_score * stake_score

    def score_provider(self, provider: Provider, job: Job) -> float:
        """Score a provider for a job, including jitter."""
        return self.base_score(provider) + self._rng.random() * self.config.jitter

    def select_best_provider(
        self,
        providers: Sequence[Provider],
        job: Job,
    ) -> Optional[Provider]:
        """
        Select the single best provider for a job.

        Args:
            providers: Ledger snapshot of providers
            job: Job being assigned

        Returns:
            Highest scoring eligible provider, or None if none is eligible
        """
        now = self._clock()
        eligible = [p for p in providers if self.is_eligible(p, now)]

        if not eligible:
            logger.debug(f"No eligible provider among {len(providers)} for job {job.id}")
            return None

        scored = [(self.score_provider(p, job), p) for p in eligible]
        best_score, best = max(scored, key=lambda item: item[0])

        logger.debug(
            f"Selected {best.address} for job {job.id} "
            f"(score {best_score:.4f}, {len(eligible)} eligible)"
        )
        return best

    def select_for_redundancy(
        self,
        providers: Sequence[Provider],
        count: Optional[int] = None,
    ) -> List[Provider]:
        """
        Select providers for redundant execution.

        Only is_active is checked here; heartbeat age is not.

        Args:
            providers: Ledger snapshot of providers
            count: Number of providers wanted (config.redundancy_count if None)

        Returns:
            All active providers if there are at most count of them,
            otherwise the top count by reputation * stake
        """
        if count is None:
            count = self.config.redundancy_count
        if count <= 0:
            return []

        eligible = [p for p in providers if p.is_active]

        if len(eligible) <= count:
            return eligible

        ranked = sorted(
            eligible,
            key=lambda p: p.reputation * p.staked_amount,
            reverse=True,
        )
        return ranked[:count]
