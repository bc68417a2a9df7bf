"""Recipe engine — repository, matcher, resolver, executor."""

from nrcli.core.recipes.executor import RecipeExecutor, render_taskfile
from nrcli.core.recipes.matcher import explain_matches, match_recipes
from nrcli.core.recipes.repository import (
    BUNDLED_RECIPES_DIR,
    RecipeRepository,
    load_recipe_sources,
    load_recipes,
)
from nrcli.core.recipes.resolver import VariableResolver

__all__ = [
    "BUNDLED_RECIPES_DIR",
    "RecipeExecutor",
    "RecipeRepository",
    "VariableResolver",
    "explain_matches",
    "load_recipe_sources",
    "load_recipes",
    "match_recipes",
    "render_taskfile",
]
