"""Formation recommendation agent: natural-language request to validated SQL, with fallback."""
from .config import AgentConfig, load_configuration
from .core import RecommendationAgent, RecommendationOutcome, RecommendationRequest

__version__ = "0.1.0"

__all__ = [
    'AgentConfig',
    'load_configuration',
    'RecommendationAgent',
    'RecommendationOutcome',
    'RecommendationRequest',
]
