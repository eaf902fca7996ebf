# client_icons/services/auto_assign_service.py
"""
Synchronous icon reconciliation for a single client.

Runs inside the caller's transaction: reads the company's rules and the
client's current auto-assignments, evaluates every rule and applies the
resulting diff. Manual assignments are never removed.
"""

import logging
from typing import Dict, Optional, Set

from sqlalchemy.orm import Session

from client_icons.core.constants import LogMessages
from client_icons.core.exceptions import ConditionEvaluationError
from client_icons.core.types import ReconciliationResult
from client_icons.models import Client, ClientIcon
from .condition_evaluator import ConditionEvaluator
from .icon_assignment_repository import IconAssignmentRepository

logger = logging.getLogger(__name__)


class AutoAssignService:
    """Computes and applies the icon assignment diff for one client."""

    def __init__(self, evaluator: Optional[ConditionEvaluator] = None):
        self.evaluator = evaluator or ConditionEvaluator()

    def evaluate_and_assign(self, session: Session, client: Client) -> ReconciliationResult:
        """
        Reconcile the auto-assigned icons of a client.

        Args:
            session: Open session; the caller commits or rolls back
            client: Client whose attributes were just created or updated

        Returns:
            ReconciliationResult with added/removed icon ids

        Raises:
            SQLAlchemyError: Storage failures propagate untouched
        """
        repo = IconAssignmentRepository(session)
        result = ReconciliationResult(client_id=client.id, company_id=client.company_id)

        icons = repo.find_active_icons_with_condition(client.company_id)
        current_auto_ids: Set[int] = {a.icon_id for a in repo.find_auto_assignments(client.id)}

        matches = self._evaluate_icons(client, icons, result)

        to_add = [icon_id for icon_id, matched in matches.items() if matched]
        # Icons that failed evaluation keep whatever they had
        to_remove = [
            icon_id for icon_id in sorted(current_auto_ids)
            if icon_id not in result.failed_icon_ids and not matches.get(icon_id, False)
        ]

        for icon_id in to_add:
            if icon_id in current_auto_ids:
                continue
            # Re-check right before writing: the snapshot above may be stale
            if repo.find_assignment(client.id, icon_id) is not None:
                result.skipped += 1
                continue
            if repo.insert_assignment_if_absent(client.id, icon_id, is_auto=True):
                result.added.append(icon_id)
            else:
                result.skipped += 1

        for icon_id in to_remove:
            if repo.delete_assignment(client.id, icon_id, auto_only=True):
                result.removed.append(icon_id)

        if result.changed:
            logger.info(
                f"🏷️ Client {client.id}: +{len(result.added)} / -{len(result.removed)} auto icons"
            )
        return result

    def _evaluate_icons(self, client: Client, icons, result: ReconciliationResult) -> Dict[int, bool]:
        """Evaluate every rule, isolating failures to the icon that raised them."""
        matches: Dict[int, bool] = {}
        for icon in icons:
            try:
                matches[icon.id] = self._matches(client, icon)
            except ConditionEvaluationError as e:
                result.failed_icon_ids.append(icon.id)
                logger.warning(LogMessages.format(
                    LogMessages.EVALUATION_FAILED,
                    icon_id=icon.id,
                    client_id=client.id,
                    company_id=client.company_id,
                    error=e.message,
                ))
        return matches

    def _matches(self, client: Client, icon: ClientIcon) -> bool:
        compiled = self.evaluator.compile(icon.auto_assign_condition)
        return compiled.matches(client)
