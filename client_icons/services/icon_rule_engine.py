# client_icons/services/icon_rule_engine.py
"""
Entry point of the icon auto-assignment engine.

Client and icon CRUD code call this facade after their own changes are
committed:

- client created or updated  -> evaluate_and_assign(client)
- icon rule created/changed  -> reevaluate_icon_for_all_clients(icon)
- icon deactivated           -> reevaluate_icon_for_all_clients(icon)
"""

import logging
from typing import List, Optional

from client_icons.core.constants import LogMessages
from client_icons.core.exceptions import AutoAssignmentError
from client_icons.core.types import IconSnapshot, ReconciliationResult
from client_icons.models import Client, ClientIcon
from .auto_assign_service import AutoAssignService
from .background_runner import BackgroundTaskRunner
from .bulk_reassign_service import BulkReassignService
from .condition_evaluator import ConditionEvaluator
from .database_service import DatabaseService
from .icon_assignment_repository import IconAssignmentRepository

logger = logging.getLogger(__name__)


class IconRuleEngine:
    """Facade hiding transactions and background scheduling from callers."""

    def __init__(
        self,
        database: DatabaseService,
        runner: Optional[BackgroundTaskRunner] = None,
        evaluator: Optional[ConditionEvaluator] = None,
        batch_size: Optional[int] = None,
        max_batches: Optional[int] = None,
    ):
        self.database = database
        self.runner = runner or BackgroundTaskRunner()
        self.evaluator = evaluator or ConditionEvaluator()
        self.auto_assign = AutoAssignService(self.evaluator)
        self.bulk = BulkReassignService(database, self.evaluator, batch_size, max_batches)

    def evaluate_and_assign(self, client: Client) -> ReconciliationResult:
        """
        Reconcile one client's auto-assigned icons in a single transaction.

        Rules that fail to evaluate are skipped and reported in the result.

        Raises:
            AutoAssignmentError: Storage failure; nothing was written
        """
        client_id, company_id = client.id, client.company_id
        try:
            with self.database.get_session() as session:
                return self.auto_assign.evaluate_and_assign(session, client)
        except Exception as e:
            logger.error(LogMessages.format(
                LogMessages.RECONCILIATION_FAILED, client_id=client_id, error=e
            ))
            raise AutoAssignmentError(
                f"Icon reconciliation failed for client {client_id}: {e}",
                {"client_id": client_id, "company_id": company_id},
            ) from e

    def reevaluate_icon_for_all_clients(self, icon: ClientIcon) -> None:
        """
        Re-apply an icon's rule to every client of its company.

        An icon without a rule, or an inactive one, loses its auto-assignments
        right away. Otherwise the walk runs in the background and this returns
        immediately; walk failures only reach the runner's error channel.

        Raises:
            AutoAssignmentError: The synchronous cleanup failed
        """
        snapshot = IconSnapshot.from_icon(icon)

        if not snapshot.has_condition or not snapshot.is_active:
            self._clear_icons([snapshot])
            return

        self._schedule_walk(snapshot)

    def resync_company(self, company_id: int) -> int:
        """
        Full re-evaluation of every icon of a company.

        Repairs walks lost to a restart or crash.

        Returns:
            Number of background walks scheduled
        """
        with self.database.get_session() as session:
            icons = IconAssignmentRepository(session).find_icons_for_company(company_id)
            snapshots = [IconSnapshot.from_icon(icon) for icon in icons]

        with_rule = [s for s in snapshots if s.is_active and s.has_condition]
        without_rule = [s for s in snapshots if not (s.is_active and s.has_condition)]

        if without_rule:
            self._clear_icons(without_rule)
        for snapshot in with_rule:
            self._schedule_walk(snapshot)

        logger.info(
            f"🔁 Company {company_id} resync: {len(with_rule)} walks scheduled, "
            f"{len(without_rule)} icons cleared"
        )
        return len(with_rule)

    def shutdown(self, wait: bool = True) -> None:
        self.runner.shutdown(wait=wait)

    def _schedule_walk(self, snapshot: IconSnapshot) -> None:
        self.runner.submit(
            f"reevaluate-icon-{snapshot.icon_id}", self.bulk.reevaluate_icon, snapshot
        )
        logger.info(LogMessages.format(
            LogMessages.WALK_SCHEDULED,
            icon_id=snapshot.icon_id,
            company_id=snapshot.company_id,
        ))

    def _clear_icons(self, snapshots: List[IconSnapshot]) -> None:
        try:
            with self.database.get_session() as session:
                for snapshot in snapshots:
                    self.bulk.clear_auto_assignments(session, snapshot.icon_id)
        except Exception as e:
            icon_ids = [s.icon_id for s in snapshots]
            raise AutoAssignmentError(
                f"Failed to remove auto-assignments of icons {icon_ids}: {e}",
                {"icon_ids": icon_ids, "company_id": snapshots[0].company_id},
            ) from e
