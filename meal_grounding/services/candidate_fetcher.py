# meal_grounding/services/candidate_fetcher.py
import random
from typing import List, Optional

from meal_grounding.config import Settings
from meal_grounding.logging_utils import get_logger
from meal_grounding.models.filters import SearchFilters
from meal_grounding.models.plan import UserPreferences
from meal_grounding.models.recipe import Candidate
from meal_grounding.services.exclusions import expand_exclusions, filter_candidates

logger = get_logger(__name__)


class FetchContext:
    """What every strategy gets to look at for one meal type."""

    def __init__(self, meal_type: str, prefs: UserPreferences, filters: SearchFilters, pool_size: int, seed=None):
        self.meal_type = meal_type
        self.prefs = prefs
        self.filters = filters
        self.pool_size = pool_size
        self.seed = seed


class PrimarySearchStrategy:
    name = "primary"

    def __init__(self, search_service):
        self.search_service = search_service

    def applies(self, ctx: FetchContext) -> bool:
        return True

    def fetch(self, ctx: FetchContext) -> List[Candidate]:
        return self.search_service.search(ctx.filters, size=ctx.pool_size, seed=ctx.seed)


class RelaxDietTagsStrategy:
    name = "relax_diet_tags"

    def __init__(self, search_service):
        self.search_service = search_service

    def applies(self, ctx: FetchContext) -> bool:
        return bool(ctx.filters.diet_tags)

    def fetch(self, ctx: FetchContext) -> List[Candidate]:
        relaxed = ctx.filters.model_copy(deep=True)
        relaxed.diet_tags = []
        return self.search_service.search(relaxed, size=ctx.pool_size, seed=ctx.seed)


class SyntheticRecipeStrategy:
    name = "synthetic"

    def __init__(self, generator, batch_size: int = 10):
        self.generator = generator
        self.batch_size = batch_size

    def applies(self, ctx: FetchContext) -> bool:
        return self.generator is not None

    def fetch(self, ctx: FetchContext) -> List[Candidate]:
        return self.generator.generate(ctx.meal_type, ctx.prefs, self.batch_size, ctx.filters.exclude_ingredients)


class CandidateFetcher:
    """
    Builds the candidate pool for one meal type.

    Strategies run in order until one yields a usable pool. Whatever comes out
    is quality-gated and exclusion-filtered again; if exclusion empties the
    pool a small synthetic batch is requested as backfill.
    """

    def __init__(self, settings: Settings, filter_builder, search_service, generator=None, strategies=None):
        self.settings = settings
        self.filter_builder = filter_builder
        self.generator = generator
        self.strategies = strategies or [
            PrimarySearchStrategy(search_service),
            RelaxDietTagsStrategy(search_service),
            SyntheticRecipeStrategy(generator, settings.synthetic_batch_size),
        ]

    def _run_chain(self, ctx: FetchContext) -> List[Candidate]:
        for strategy in self.strategies:
            if not strategy.applies(ctx):
                continue
            try:
                hits = strategy.fetch(ctx)
            except Exception as e:
                logger.warning("Candidate strategy %s failed for %s: %s", strategy.name, ctx.meal_type, e)
                continue
            usable = [c for c in hits or [] if c.is_usable()]
            if usable:
                logger.info("Strategy %s produced %d %s candidates", strategy.name, len(usable), ctx.meal_type)
                return usable
            logger.info("Strategy %s produced nothing usable for %s", strategy.name, ctx.meal_type)
        return []

    def fetch(
        self,
        meal_type: str,
        prefs: UserPreferences,
        pool_size: Optional[int] = None,
        seed=None,
    ) -> List[Candidate]:
        pool_size = pool_size or self.settings.candidate_pool_size
        filters = self.filter_builder.build(meal_type, prefs)
        ctx = FetchContext(meal_type, prefs, filters, pool_size, seed=seed)

        excludes = expand_exclusions([*prefs.raw_exclusions(), *filters.exclude_ingredients])
        pool = filter_candidates(self._run_chain(ctx), excludes)

        if not pool and self.generator is not None:
            logger.warning("Exclusions emptied the %s pool; requesting synthetic backfill", meal_type)
            try:
                backfill = self.generator.generate(meal_type, prefs, self.settings.backfill_batch_size, excludes)
            except Exception as e:
                logger.warning("Synthetic backfill failed for %s: %s", meal_type, e)
                backfill = []
            pool = filter_candidates([c for c in backfill if c.is_usable()], excludes)

        random.shuffle(pool)
        return pool[:pool_size]
