"""Schema package exports."""

from .jobs import ACTIVE_PROJECT_INDEX, GenerationJobRow

__all__ = ["ACTIVE_PROJECT_INDEX", "GenerationJobRow"]
