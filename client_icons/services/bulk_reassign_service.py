# client_icons/services/bulk_reassign_service.py
"""
Background re-evaluation of one icon across every client of its company.

Triggered when an icon's rule changes. Clients are walked page by page in
id order; each client is checked against the icon's rule alone and its
assignment fixed with a short transaction of its own. Every write re-reads
the current assignment first, so the walk can be re-run or overlap with
other reconciliations without creating duplicates or touching manual
assignments.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from client_icons.core.config import Config
from client_icons.core.constants import LogMessages
from client_icons.core.exceptions import ConditionEvaluationError
from client_icons.core.logging import time_operation
from client_icons.core.types import BulkWalkStatistics, IconSnapshot
from client_icons.models import Client
from .condition_evaluator import CompiledCondition, ConditionEvaluator
from .database_service import DatabaseService
from .icon_assignment_repository import IconAssignmentRepository

logger = logging.getLogger(__name__)


class BulkReassignService:
    """Paginated walk applying one icon rule to all active clients of a company."""

    def __init__(
        self,
        database: DatabaseService,
        evaluator: Optional[ConditionEvaluator] = None,
        batch_size: Optional[int] = None,
        max_batches: Optional[int] = None,
    ):
        self.database = database
        self.evaluator = evaluator or ConditionEvaluator()
        self.batch_size = batch_size or Config.auto_assign.BATCH_SIZE
        # 0 / None: walk until the clients run out
        self.max_batches = max_batches if max_batches is not None else Config.auto_assign.MAX_BATCHES

    def clear_auto_assignments(self, session: Session, icon_id: int) -> int:
        """Terminal case of a removed rule: one bulk delete, no evaluation."""
        removed = IconAssignmentRepository(session).bulk_delete_auto_assignments_for_icon(icon_id)
        logger.info(f"🗑️ Icon {icon_id} has no rule: removed {removed} auto-assignments")
        return removed

    def reevaluate_icon(self, snapshot: IconSnapshot) -> BulkWalkStatistics:
        """
        Walk every active client of the icon's company.

        Per-client failures are logged and counted, never raised.

        Args:
            snapshot: Detached copy of the icon taken when the rule changed

        Returns:
            BulkWalkStatistics for the walk
        """
        stats = BulkWalkStatistics(icon_id=snapshot.icon_id, company_id=snapshot.company_id)

        with time_operation(
            f"Re-evaluating icon {snapshot.icon_id} for company {snapshot.company_id}",
            logger,
            show_start=False,
            show_end=False,
        ) as timer:
            self._walk(snapshot, stats)

        stats.elapsed_seconds = timer.elapsed_time or 0.0
        logger.info(LogMessages.format(
            LogMessages.WALK_COMPLETE,
            icon_id=stats.icon_id,
            processed=stats.processed,
            pages=stats.pages,
            added=stats.added,
            removed=stats.removed,
            errors=stats.errors,
        ))
        return stats

    def _walk(self, snapshot: IconSnapshot, stats: BulkWalkStatistics) -> None:
        try:
            compiled = self.evaluator.compile(snapshot.condition)
        except ConditionEvaluationError as e:
            # The same rule would fail for every client
            self._abort(stats, f"invalid rule: {e.message}")
            logger.error(f"❌ Icon {snapshot.icon_id} rule cannot be compiled: {e.message}")
            return

        with self.database.get_session() as session:
            repo = IconAssignmentRepository(session)
            superseded = self._superseded_reason(repo, snapshot)
            if not superseded:
                stats.total_clients = repo.count_active_clients(snapshot.company_id)

        if superseded:
            self._abort(stats, superseded)
            logger.info(f"⏭️ Icon {snapshot.icon_id} walk skipped: {superseded}")
            return

        if stats.total_clients == 0:
            logger.info(f"No active clients in company {snapshot.company_id}")
            return

        after_id = None
        while stats.processed < stats.total_clients:
            if self.max_batches and stats.pages >= self.max_batches:
                self._abort(stats, f"max batches ({self.max_batches}) reached")
                logger.warning(f"⚠️ Icon {snapshot.icon_id} walk stopped after {stats.pages} pages")
                break

            page_size, after_id = self._walk_page(compiled, snapshot, after_id, stats)
            if page_size < self.batch_size:
                break

    def _walk_page(
        self,
        compiled: CompiledCondition,
        snapshot: IconSnapshot,
        after_id: Optional[int],
        stats: BulkWalkStatistics,
    ) -> Tuple[int, Optional[int]]:
        """Reconcile one page of clients in its own session; returns (size, last id)."""
        session = self.database.new_session()
        try:
            repo = IconAssignmentRepository(session)
            page = repo.page_active_clients(snapshot.company_id, self.batch_size, after_id)
            session.commit()
            if not page:
                return 0, after_id

            stats.pages += 1
            client_ids = [client.id for client in page]
            logger.debug(
                f"Icon {snapshot.icon_id}: page {stats.pages} "
                f"(clients {client_ids[0]}..{client_ids[-1]})"
            )

            for client_id, client in zip(client_ids, page):
                self._reconcile_client(session, repo, compiled, snapshot, client_id, client, stats)

            return len(page), client_ids[-1]
        finally:
            session.close()

    def _superseded_reason(self, repo: IconAssignmentRepository, snapshot: IconSnapshot) -> Optional[str]:
        """A newer edit of the icon schedules its own walk or cleanup."""
        icon = repo.get_icon(snapshot.icon_id)
        if icon is None:
            return "icon no longer exists"
        if not icon.is_active:
            return "icon was deactivated"
        if icon.auto_assign_condition != snapshot.condition:
            return "rule changed since the walk was scheduled"
        return None

    def _reconcile_client(
        self,
        session: Session,
        repo: IconAssignmentRepository,
        compiled: CompiledCondition,
        snapshot: IconSnapshot,
        client_id: int,
        client: Client,
        stats: BulkWalkStatistics,
    ) -> None:
        stats.processed += 1

        try:
            matched = compiled.matches(client)
        except ConditionEvaluationError as e:
            stats.errors += 1
            logger.warning(LogMessages.format(
                LogMessages.EVALUATION_FAILED,
                icon_id=snapshot.icon_id,
                client_id=client_id,
                company_id=snapshot.company_id,
                error=e.message,
            ))
            return
        except Exception as e:
            stats.errors += 1
            logger.error(
                f"❌ Icon {snapshot.icon_id}: evaluation crashed for client {client_id} "
                f"(company {snapshot.company_id}): {e}"
            )
            return

        try:
            existing = repo.find_assignment(client_id, snapshot.icon_id)
            if matched and existing is None:
                if repo.insert_assignment_if_absent(client_id, snapshot.icon_id, is_auto=True):
                    stats.added += 1
                else:
                    stats.unchanged += 1
            elif not matched and existing is not None and existing.is_auto_assigned:
                if repo.delete_assignment(client_id, snapshot.icon_id, auto_only=True):
                    stats.removed += 1
                else:
                    stats.unchanged += 1
            else:
                stats.unchanged += 1
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            stats.errors += 1
            logger.error(
                f"❌ Icon {snapshot.icon_id}: write failed for client {client_id} "
                f"(company {snapshot.company_id}): {e}"
            )
        except Exception as e:
            session.rollback()
            stats.errors += 1
            logger.exception(
                f"❌ Icon {snapshot.icon_id}: unexpected error for client {client_id} "
                f"(company {snapshot.company_id}): {e}"
            )

    @staticmethod
    def _abort(stats: BulkWalkStatistics, reason: str) -> None:
        stats.aborted = True
        stats.abort_reason = reason
