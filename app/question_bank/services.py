"""
Question bank services: static content loading, role gating and paging.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from app.account.errors import NotFound, UpstreamError
from app.account.models import Session
from app.account.services import AccountService
from .models import ContentItem, DifficultyTag, GateState, Pagination, VisibleContent

logger = logging.getLogger(__name__)


class QuestionSource:
    """Read-only mapping of role name -> ordered questions, loaded once."""

    def __init__(self, questions: Dict[str, List[ContentItem]]):
        self._questions = questions

    @classmethod
    def from_file(cls, questions_file: Path) -> "QuestionSource":
        with open(questions_file, 'r', encoding='utf-8') as f:
            raw = json.load(f)
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: Dict[str, List[Dict[str, Any]]]) -> "QuestionSource":
        questions = {
            role: [ContentItem.model_validate(item) for item in items]
            for role, items in raw.items()
        }
        total = sum(len(items) for items in questions.values())
        logger.info(f"Loaded {total} questions across {len(questions)} roles")
        return cls(questions)

    def roles(self) -> List[str]:
        return list(self._questions)

    def get(self, role: str) -> Optional[List[ContentItem]]:
        return self._questions.get(role)

    def all_items(self) -> List[ContentItem]:
        return [item for items in self._questions.values() for item in items]


class ContentGate:
    """Selects which questions are visible for a role."""

    def __init__(self, source: QuestionSource):
        self.source = source

    def roles(self) -> List[str]:
        """Role names the dataset has questions for."""
        return self.source.roles()

    def visible_content(self, role: Optional[str], question_bank_access: int = 0) -> VisibleContent:
        """Resolve the basic and advanced questions for ``role``.

        Lookup order: exact role key, then case-insensitive role key, then
        every item whose own ``role`` field matches case-insensitively.
        The advanced set is returned whatever ``question_bank_access`` is;
        hiding it is up to the caller. No match yields empty sets.
        """
        if not role:
            return VisibleContent()

        items = self.source.get(role)
        if items is None:
            matching_key = next(
                (key for key in self.source.roles() if key.lower() == role.lower()),
                None,
            )
            if matching_key is not None:
                items = self.source.get(matching_key)
            else:
                items = [
                    item for item in self.source.all_items()
                    if item.role and item.role.lower() == role.lower()
                ]

        return VisibleContent(
            basic=[item for item in items if item.has_tag(DifficultyTag.BASIC)],
            advanced=[item for item in items if item.has_tag(DifficultyTag.ADVANCED)],
        )

    @staticmethod
    def resolve_state(resolved: bool, role: Optional[str], content: VisibleContent) -> GateState:
        if not resolved:
            return GateState.LOADING
        if not role:
            return GateState.UNAUTHENTICATED
        if content.is_empty:
            return GateState.NO_CONTENT
        return GateState.READY


class QuestionBrowser:
    """Builds the paginated question page for a session."""

    def __init__(self, gate: ContentGate, account_service: AccountService, default_per_page: int = 1):
        self.gate = gate
        self.account_service = account_service
        self.default_per_page = default_per_page

    def browse(
        self,
        session: Optional[Session],
        basic_page: int = 1,
        advanced_page: int = 1,
        per_page: Optional[int] = None,
    ) -> Dict[str, Any]:
        per_page = per_page or self.default_per_page
        role = None
        access = 0
        resolved = True

        if session is not None:
            try:
                entitlement = self.account_service.get_entitlement(session.account_id)
                role = entitlement.role
                access = entitlement.question_bank_access
            except NotFound:
                # Signed in, profile not written yet
                resolved = False
            except UpstreamError as e:
                logger.error(f"Error fetching user document for {session.account_id}: {e.cause}")

        content = self.gate.visible_content(role, access)
        state = self.gate.resolve_state(resolved, role, content)

        page = {
            "state": state.value,
            "role": role,
            "question_bank_access": access,
        }
        if state != GateState.READY:
            return page

        basic_pagination = Pagination(len(content.basic), basic_page, per_page)
        page["basic"] = {
            "items": [item.to_dict() for item in basic_pagination.get_page_items(content.basic)],
            "pagination": basic_pagination.to_dict(),
        }

        if access == 1:
            advanced_pagination = Pagination(len(content.advanced), advanced_page, per_page)
            page["advanced"] = {
                "locked": False,
                "items": [item.to_dict() for item in advanced_pagination.get_page_items(content.advanced)],
                "pagination": advanced_pagination.to_dict(),
            }
        else:
            page["advanced"] = {"locked": True, "total_items": len(content.advanced)}
        return page
