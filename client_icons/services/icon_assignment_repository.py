# client_icons/services/icon_assignment_repository.py
from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from client_icons.core.types import is_empty_condition
from client_icons.models import Client, ClientIcon, ClientIconAssignment
import logging

logger = logging.getLogger(__name__)

# Dialects supporting INSERT ... ON CONFLICT DO NOTHING
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class IconAssignmentRepository:
    """
    Repository for icon auto-assignment database operations.

    Every write re-validates the state it expects in the statement itself,
    so concurrent reconciliations of the same (client, icon) pair stay safe
    without locking.
    """

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # Icons
    # ------------------------------------------------------------------

    def find_active_icons_with_condition(self, company_id: int) -> List[ClientIcon]:
        """Active icons of a company carrying a non-empty auto-assign rule."""
        icons = self.session.scalars(
            select(ClientIcon)
            .where(
                ClientIcon.company_id == company_id,
                ClientIcon.is_active.is_(True),
                ClientIcon.auto_assign_condition.isnot(None),
            )
            .order_by(ClientIcon.id)
        ).all()
        return [icon for icon in icons if not is_empty_condition(icon.auto_assign_condition)]

    def find_icons_for_company(self, company_id: int) -> List[ClientIcon]:
        """All icons of a company, active or not."""
        return self.session.scalars(
            select(ClientIcon)
            .where(ClientIcon.company_id == company_id)
            .order_by(ClientIcon.id)
        ).all()

    def get_icon(self, icon_id: int) -> Optional[ClientIcon]:
        return self.session.get(ClientIcon, icon_id)

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def find_auto_assignments(self, client_id: int) -> List[ClientIconAssignment]:
        return self.session.scalars(
            select(ClientIconAssignment).where(
                ClientIconAssignment.client_id == client_id,
                ClientIconAssignment.is_auto_assigned.is_(True),
            )
        ).all()

    def find_assignment(self, client_id: int, icon_id: int) -> Optional[ClientIconAssignment]:
        """Current assignment of the pair, manual or automatic."""
        return self.session.scalars(
            select(ClientIconAssignment).where(
                ClientIconAssignment.client_id == client_id,
                ClientIconAssignment.icon_id == icon_id,
            )
        ).first()

    def insert_assignment_if_absent(self, client_id: int, icon_id: int, is_auto: bool = True) -> bool:
        """
        Insert an assignment unless the pair already exists.

        Returns:
            True if a row was inserted, False if one already existed
        """
        values = {
            "client_id": client_id,
            "icon_id": icon_id,
            "is_auto_assigned": is_auto,
            "display_order": 0,
            "created_at": datetime.now(timezone.utc),
        }

        insert = _UPSERT_INSERTS.get(self.session.get_bind().dialect.name)
        if insert is None:
            return self._insert_in_savepoint(values)

        stmt = (
            insert(ClientIconAssignment.__table__)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["client_id", "icon_id"])
        )
        inserted = self.session.execute(stmt).rowcount == 1
        if not inserted:
            logger.debug(f"Assignment client={client_id} icon={icon_id} already exists")
        return inserted

    def _insert_in_savepoint(self, values: dict) -> bool:
        try:
            with self.session.begin_nested():
                self.session.add(ClientIconAssignment(**values))
            return True
        except IntegrityError:
            logger.debug(
                f"Assignment client={values['client_id']} icon={values['icon_id']} "
                f"created concurrently"
            )
            return False

    def delete_assignment(self, client_id: int, icon_id: int, auto_only: bool = True) -> bool:
        """
        Delete the assignment of a pair.

        With auto_only (the default) the row is removed only if it is still
        auto-assigned, so a manual assignment is never touched.
        """
        stmt = delete(ClientIconAssignment).where(
            ClientIconAssignment.client_id == client_id,
            ClientIconAssignment.icon_id == icon_id,
        )
        if auto_only:
            stmt = stmt.where(ClientIconAssignment.is_auto_assigned.is_(True))
        return self.session.execute(stmt).rowcount > 0

    def bulk_delete_auto_assignments_for_icon(self, icon_id: int) -> int:
        """Remove every auto-assignment of an icon across the company."""
        result = self.session.execute(
            delete(ClientIconAssignment).where(
                ClientIconAssignment.icon_id == icon_id,
                ClientIconAssignment.is_auto_assigned.is_(True),
            )
        )
        return result.rowcount

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    def count_active_clients(self, company_id: int) -> int:
        return self.session.scalar(
            select(func.count())
            .select_from(Client)
            .where(Client.company_id == company_id, Client.is_active.is_(True))
        )

    def page_active_clients(self, company_id: int, limit: int, after_id: Optional[int] = None) -> List[Client]:
        """
        One page of active clients ordered by id.

        Pages are addressed by the last id seen rather than an offset, so
        clients created or deleted during a walk neither shift nor repeat
        the remaining pages.
        """
        stmt = select(Client).where(Client.company_id == company_id, Client.is_active.is_(True))
        if after_id is not None:
            stmt = stmt.where(Client.id > after_id)
        return self.session.scalars(stmt.order_by(Client.id).limit(limit)).all()
