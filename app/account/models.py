"""
Entitlement data models and the canonical tier bundles.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from typing import Dict, Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# Stored in place of "no limit" for quotas on paid plans.
UNLIMITED = 10_000_000_000


class PlanTier(IntEnum):
    """Subscription plans, ordered by entitlement."""
    FREE = 0
    PRO = 1
    PREMIUM = 2


class CaseStudyAccess(BaseModel):
    """Case study allowance, tiered like the top-level plan."""
    model_config = ConfigDict(populate_by_name=True)

    plan: int = Field(default=0, description="Case study plan tier")
    per_week: int = Field(default=0, alias="perWeek", description="Case studies per week")


class UserEntitlement(BaseModel):
    """Per-account entitlement record as stored in the ``users`` collection."""
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = Field(default=None, description="Account email, immutable after creation")
    role: Optional[str] = Field(default=None, description="Selected career track, free-form")
    plan: int = Field(default=0, description="0 free, 1 pro, 2 premium")
    interview_quota: int = Field(default=3, alias="interviewQuota")
    question_bank_access: int = Field(default=0, alias="questionBankAccess")
    progress_tracking: int = Field(default=0, alias="progressTracking")
    case_study: CaseStudyAccess = Field(default_factory=CaseStudyAccess, alias="caseStudy")
    interview_given: int = Field(default=0, alias="interviewGiven")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    last_login_at: Optional[str] = Field(default=None, alias="lastLoginAt")

    @property
    def tier(self) -> PlanTier:
        return PlanTier(self.plan)

    @property
    def has_advanced_questions(self) -> bool:
        return self.question_bank_access == 1

    def interviews_remaining(self) -> int:
        """Interviews left under the current quota."""
        return max(0, self.interview_quota - self.interview_given)

    def tier_fields(self) -> Dict[str, Any]:
        """The fields governed by the tier bundle, in stored form."""
        data = self.to_document()
        return {key: data[key] for key in TIER_FIELDS}

    def matching_bundle(self) -> Optional[PlanTier]:
        """Return the tier whose bundle these fields match, if any."""
        fields = self.tier_fields()
        for tier, bundle in TIER_BUNDLES.items():
            if fields == bundle:
                return tier
        return None

    def is_consistent(self) -> bool:
        return self.matching_bundle() is not None

    def to_document(self) -> Dict[str, Any]:
        """Serialize using the stored (camelCase) field names."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "UserEntitlement":
        return cls.model_validate(data)


TIER_FIELDS = ("plan", "interviewQuota", "questionBankAccess", "progressTracking", "caseStudy")

TIER_BUNDLES: Dict[PlanTier, Dict[str, Any]] = {
    PlanTier.FREE: {
        "plan": 0,
        "interviewQuota": 3,
        "questionBankAccess": 0,
        "progressTracking": 0,
        "caseStudy": {"plan": 0, "perWeek": 0},
    },
    PlanTier.PRO: {
        "plan": 1,
        "interviewQuota": UNLIMITED,
        "questionBankAccess": 1,
        "progressTracking": 1,
        "caseStudy": {"plan": 1, "perWeek": 2},
    },
    PlanTier.PREMIUM: {
        "plan": 2,
        "interviewQuota": UNLIMITED,
        "questionBankAccess": 1,
        "progressTracking": 1,
        "caseStudy": {"plan": 2, "perWeek": UNLIMITED},
    },
}


def tier_bundle(tier: PlanTier) -> Dict[str, Any]:
    """Return a fresh copy of the canonical bundle for ``tier``."""
    bundle = dict(TIER_BUNDLES[tier])
    bundle["caseStudy"] = dict(bundle["caseStudy"])
    return bundle


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def new_account_document(email: Optional[str], role: Optional[str]) -> Dict[str, Any]:
    """Default record for a newly created account on the free plan."""
    document = {
        "email": email,
        "role": role,
        "createdAt": utc_now_iso(),
        "interviewGiven": 0,
    }
    document.update(tier_bundle(PlanTier.FREE))
    return document


@dataclass(frozen=True)
class Identity:
    """An authenticated principal as reported by the identity provider."""
    uid: str
    email: Optional[str]
    provider: str = "password"


@dataclass(frozen=True)
class Session:
    """An active sign-in, passed explicitly into every account operation."""
    token: str
    identity: Identity

    @property
    def account_id(self) -> str:
        return self.identity.uid
