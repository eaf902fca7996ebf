from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest
from sqlalchemy import select

from client_icons.core.constants import VatStatus
from client_icons.models import Client, ClientIconAssignment
from client_icons.services import DatabaseService

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "manage_icons.py"


@pytest.fixture
def manage_icons():
    spec = importlib.util.spec_from_file_location("manage_icons", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _auto_rows(url):
    db = DatabaseService(url)
    try:
        with db.get_session() as session:
            rows = session.scalars(select(ClientIconAssignment)).all()
            return sorted((r.client_id, r.is_auto_assigned) for r in rows)
    finally:
        db.dispose()


def test_init_import_and_resync(manage_icons, tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    assert manage_icons.main(["--database-url", url, "init-db"]) == 0

    db = DatabaseService(url)
    with db.get_session() as session:
        monthly = Client(company_id=1, name="A", vat_status=VatStatus.VAT_MONTHLY)
        session.add_all([monthly, Client(company_id=1, name="B", vat_status=VatStatus.NO)])
    db.dispose()

    rules = tmp_path / "rules.csv"
    rules.write_text(
        "company_id;icon_name;field;operator;value\n"
        "1;VAT;vatStatus;equals;VAT_MONTHLY\n",
        encoding="utf-8",
    )

    assert manage_icons.main(["--database-url", url, "import-rules", "--rules-file", str(rules)]) == 0
    assert _auto_rows(url) == [(monthly.id, True)]

    assert manage_icons.main(["--database-url", url, "resync", "--company", "1", "--timeout", "30"]) == 0
    assert _auto_rows(url) == [(monthly.id, True)]


def test_unreadable_rules_file_fails(manage_icons, tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    manage_icons.main(["--database-url", url, "init-db"])
    broken = tmp_path / "broken.csv"
    broken.write_text("just one column\nvalue\n", encoding="utf-8")

    assert manage_icons.main(["--database-url", url, "import-rules", "--rules-file", str(broken)]) == 1
