#!/usr/bin/env python3
"""
Entitlement record management script.

Lists and inspects user entitlement records, assigns roles, applies plan
bundles, and validates that every record matches exactly one canonical
tier bundle (free / pro / premium).
"""

import json
import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from app.account.models import PlanTier, UserEntitlement, tier_bundle
from app.account.ports import DocumentNotFound
from app.account.services import USERS
from app.account.store import JsonDocumentStore

# Set up logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


class EntitlementManager:
    """Administrative access to entitlement records."""

    def __init__(self, user_data_dir: Path):
        self.store = JsonDocumentStore(user_data_dir)

    def list_accounts(self) -> List[str]:
        return self.store.list_ids(USERS)

    def show(self, uid: str) -> Dict[str, Any]:
        return self.store.get(USERS, uid)

    def set_role(self, uid: str, role: str) -> Dict[str, Any]:
        if not self.store.exists(USERS, uid):
            raise DocumentNotFound(USERS, uid)
        logger.info(f"Setting role for {uid}: {role!r}")
        return self.store.merge_set(USERS, uid, {"role": role})

    def set_plan(self, uid: str, tier: PlanTier) -> Dict[str, Any]:
        if not self.store.exists(USERS, uid):
            raise DocumentNotFound(USERS, uid)
        logger.info(f"Applying {tier.name.lower()} bundle to {uid}")
        return self.store.merge_set(USERS, uid, tier_bundle(tier))

    def validate(self, fix: bool = False, dry_run: bool = False) -> Dict[str, Any]:
        """Report records whose tier fields match no canonical bundle.

        With ``fix`` the bundle for the record's ``plan`` value is re-applied;
        an unknown plan value is left for manual review.
        """
        summary = {"checked": 0, "consistent": 0, "inconsistent": [], "fixed": [], "unfixable": []}

        for uid in self.list_accounts():
            summary["checked"] += 1
            entitlement = UserEntitlement.from_document(self.store.get(USERS, uid))
            if entitlement.is_consistent():
                summary["consistent"] += 1
                continue

            summary["inconsistent"].append(uid)
            if not fix:
                continue

            try:
                tier = PlanTier(entitlement.plan)
            except ValueError:
                logger.warning(f"{uid}: unknown plan value {entitlement.plan!r}")
                summary["unfixable"].append(uid)
                continue

            if not dry_run:
                self.store.merge_set(USERS, uid, tier_bundle(tier))
            summary["fixed"].append(uid)

        return summary

    def get_stats(self) -> Dict[str, Any]:
        """Count accounts per plan and per role."""
        plans: Dict[str, int] = {tier.name.lower(): 0 for tier in PlanTier}
        roles: Dict[str, int] = {}
        for uid in self.list_accounts():
            entitlement = UserEntitlement.from_document(self.store.get(USERS, uid))
            try:
                plans[PlanTier(entitlement.plan).name.lower()] += 1
            except ValueError:
                plans["unknown"] = plans.get("unknown", 0) + 1
            role = entitlement.role or "(unset)"
            roles[role] = roles.get(role, 0) + 1
        return {"total": sum(plans.values()), "plans": plans, "roles": roles}


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Entitlement record management script")
    parser.add_argument("--user-data-dir", type=Path, default=Path("user_data"),
                        help="Directory containing the document store")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List account ids")
    subparsers.add_parser("stats", help="Show plan and role statistics")

    show_parser = subparsers.add_parser("show", help="Show one entitlement record")
    show_parser.add_argument("uid")

    role_parser = subparsers.add_parser("set-role", help="Assign a role")
    role_parser.add_argument("uid")
    role_parser.add_argument("role")

    plan_parser = subparsers.add_parser("set-plan", help="Apply a plan bundle")
    plan_parser.add_argument("uid")
    plan_parser.add_argument("plan", choices=[tier.name.lower() for tier in PlanTier])

    validate_parser = subparsers.add_parser("validate", help="Check tier bundle consistency")
    validate_parser.add_argument("--fix", action="store_true",
                                 help="Re-apply the bundle matching each record's plan")
    validate_parser.add_argument("--dry-run", action="store_true",
                                 help="Show what would be changed without making changes")

    args = parser.parse_args(argv)
    manager = EntitlementManager(args.user_data_dir)

    try:
        if args.command == "list":
            result: Any = manager.list_accounts()
        elif args.command == "stats":
            result = manager.get_stats()
        elif args.command == "show":
            result = manager.show(args.uid)
        elif args.command == "set-role":
            result = manager.set_role(args.uid, args.role)
        elif args.command == "set-plan":
            result = manager.set_plan(args.uid, PlanTier[args.plan.upper()])
        else:
            result = manager.validate(fix=args.fix, dry_run=args.dry_run)
    except DocumentNotFound as e:
        logger.error(str(e))
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    if args.command == "validate" and result["inconsistent"] and not args.fix:
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
