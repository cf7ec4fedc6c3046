"""
Model Judge - ask two language models, keep the best answer

Fans a question out to OpenAI and Gemini, picks a winner with a length
heuristic or a judge model, and stores the exchange in per-user
conversation threads.
"""

__version__ = "1.0.0"

from .settings import Settings
from .orchestrator import ConversationOrchestrator

__all__ = ["ConversationOrchestrator", "Settings", "__version__"]
