"""
Domain models — Pydantic types for the recipe engine.

All models are re-exported here for convenient access:

    from nrcli.core.models import HostManifest, Recipe, StepReceipt
"""

from nrcli.core.models.manifest import HostManifest, ProcessInfo
from nrcli.core.models.receipt import StepReceipt
from nrcli.core.models.recipe import (
    ProcessPattern,
    Recipe,
    RecipeMetadata,
    Step,
    VariableConfig,
)

__all__ = [
    # manifest.py
    "HostManifest",
    "ProcessInfo",
    # recipe.py
    "ProcessPattern",
    "Recipe",
    "RecipeMetadata",
    "Step",
    "VariableConfig",
    # receipt.py
    "StepReceipt",
]
