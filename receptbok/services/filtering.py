from __future__ import annotations

import logging
from typing import List, Sequence

from .candidates import CompactRecipe

logger = logging.getLogger(__name__)

DEFAULT_MIN_RESULTS = 5


def filter_recipes_by_categories(
    recipes: Sequence[CompactRecipe],
    categories: Sequence[str],
    *,
    min_results: int = DEFAULT_MIN_RESULTS,
) -> List[CompactRecipe]:
    """Keep recipes sharing at least one category (case-insensitive) with the request.

    A niche category must not starve the model of choices: when fewer than
    `min_results` recipes survive, the full candidate list is returned instead.
    """
    if not categories:
        return list(recipes)

    wanted = {c.lower() for c in categories if c}
    filtered = [
        recipe
        for recipe in recipes
        if any((category or "").lower() in wanted for category in recipe.categories)
    ]
    if len(filtered) < min_results:
        logger.debug(
            "Category filter kept %s of %s recipes (< %s); using all recipes",
            len(filtered),
            len(recipes),
            min_results,
        )
        return list(recipes)
    return filtered
