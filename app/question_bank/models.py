"""
Question bank models: content items, gate state and pagination.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List
import math

from pydantic import BaseModel, ConfigDict, Field


class DifficultyTag(str, Enum):
    BASIC = "basic"
    ADVANCED = "advanced"


class GateState(str, Enum):
    """Observable lifecycle of the question gate, exactly one at a time."""
    LOADING = "loading"                  # credentials not yet resolved
    UNAUTHENTICATED = "unauthenticated"  # no role known
    NO_CONTENT = "no_content"            # role known, nothing matched
    READY = "ready"


class ContentItem(BaseModel):
    """A single interview question as stored in the static dataset."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    role: str = Field(default="", description="Career track the question belongs to")
    difficulty_tag: str = Field(alias="tags", description="'basic' or 'advanced'")
    prompt: str = Field(alias="question")
    answer: str = Field(default="")

    def has_tag(self, tag: DifficultyTag) -> bool:
        return self.difficulty_tag.lower() == tag.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "tags": self.difficulty_tag,
            "question": self.prompt,
            "answer": self.answer,
        }


@dataclass
class VisibleContent:
    """Basic and advanced questions resolved for a role."""
    basic: List[ContentItem] = field(default_factory=list)
    advanced: List[ContentItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.basic and not self.advanced


class Pagination:
    """Pagination data structure."""

    def __init__(self, total_items: int, page: int = 1, per_page: int = 10):
        self.total_items = total_items
        self.page = max(1, page)
        self.per_page = max(1, min(per_page, 100))
        self.total_pages = max(1, math.ceil(total_items / self.per_page))

        if self.page > self.total_pages:
            self.page = self.total_pages

        self.start = (self.page - 1) * self.per_page
        self.end = self.start + self.per_page

    def get_page_items(self, items: List[Any]) -> List[Any]:
        """Get items for current page."""
        return items[self.start:self.end]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "page": self.page,
            "per_page": self.per_page,
            "total_pages": self.total_pages,
            "total_items": self.total_items
        }
