from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

import pytest
from sqlalchemy import select

from client_icons.models import Client, ClientIcon, ClientIconAssignment
from client_icons.services import BackgroundTaskRunner, DatabaseService


@pytest.fixture
def database(tmp_path: Path):
    db = DatabaseService(f"sqlite:///{tmp_path / 'icons.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def runner():
    errors: List[Tuple[str, BaseException]] = []
    # One worker: SQLite serializes writers anyway
    background = BackgroundTaskRunner(max_workers=1, on_error=lambda name, e: errors.append((name, e)))
    background.errors = errors
    yield background
    background.shutdown(wait=True)


@pytest.fixture
def make_client(database):
    def _make(company_id: int = 1, **fields) -> Client:
        fields.setdefault("name", "Klient")
        fields.setdefault("is_active", True)
        fields.setdefault("receive_email_copy", False)
        with database.get_session() as session:
            client = Client(company_id=company_id, **fields)
            session.add(client)
        return client

    return _make


@pytest.fixture
def make_icon(database):
    def _make(company_id: int = 1, name: str = "Ikona", condition=None, is_active: bool = True) -> ClientIcon:
        with database.get_session() as session:
            icon = ClientIcon(
                company_id=company_id,
                name=name,
                color="#ff0000",
                auto_assign_condition=condition,
                is_active=is_active,
            )
            session.add(icon)
        return icon

    return _make


@pytest.fixture
def assign(database):
    def _assign(client_id: int, icon_id: int, is_auto: bool = False) -> None:
        with database.get_session() as session:
            session.add(ClientIconAssignment(client_id=client_id, icon_id=icon_id, is_auto_assigned=is_auto))

    return _assign


@pytest.fixture
def assignments(database):
    """Current assignment rows as sorted (client_id, icon_id, is_auto) tuples."""

    def _rows(icon_id: int = None, client_id: int = None) -> List[Tuple[int, int, bool]]:
        stmt = select(ClientIconAssignment)
        if icon_id is not None:
            stmt = stmt.where(ClientIconAssignment.icon_id == icon_id)
        if client_id is not None:
            stmt = stmt.where(ClientIconAssignment.client_id == client_id)
        with database.get_session() as session:
            rows = session.scalars(stmt).all()
            return sorted((r.client_id, r.icon_id, r.is_auto_assigned) for r in rows)

    return _rows


@pytest.fixture
def update_icon(database):
    def _update(icon_id: int, **fields) -> ClientIcon:
        with database.get_session() as session:
            icon = session.get(ClientIcon, icon_id)
            for key, value in fields.items():
                setattr(icon, key, value)
        return icon

    return _update


@pytest.fixture
def update_client(database):
    def _update(client_id: int, **fields) -> Client:
        with database.get_session() as session:
            client = session.get(Client, client_id)
            for key, value in fields.items():
                setattr(client, key, value)
        return client

    return _update
