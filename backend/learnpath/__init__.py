"""LearnPath recommendation engine."""

from .config import Settings, get_settings
from .orchestrator import EngineContext, RecommendationOrchestrator, build_context

__all__ = [
    "EngineContext",
    "RecommendationOrchestrator",
    "Settings",
    "build_context",
    "get_settings",
]
