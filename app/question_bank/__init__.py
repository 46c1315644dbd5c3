"""
Role-gated interview question bank.
"""

from .models import ContentItem, DifficultyTag, GateState, VisibleContent
from .services import ContentGate, QuestionBrowser, QuestionSource

__all__ = [
    "ContentItem",
    "DifficultyTag",
    "GateState",
    "VisibleContent",
    "ContentGate",
    "QuestionBrowser",
    "QuestionSource",
]
