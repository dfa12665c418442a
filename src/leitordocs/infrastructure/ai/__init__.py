"""AI vision providers for document reading."""

from leitordocs.infrastructure.ai.base import AIResponse, VisionClient, parse_analysis
from leitordocs.infrastructure.ai.cost_tracker import CostTracker
from leitordocs.infrastructure.ai.factory import AIServiceFactory, get_ai_factory

__all__ = [
    "AIResponse",
    "AIServiceFactory",
    "CostTracker",
    "VisionClient",
    "get_ai_factory",
    "parse_analysis",
]
