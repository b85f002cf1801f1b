"""Generative AI helpers."""

from .recipes import RecipeClient, RecipeServiceError, build_recipe_client

__all__ = ["RecipeClient", "RecipeServiceError", "build_recipe_client"]
