from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import select

from client_icons.core.exceptions import RuleImportError
from client_icons.importers import HeaderNormalizer, IconRuleImporter
from client_icons.models import ClientIcon

RULES_CSV = """company_id;icon_name;field;operator;value;second_value;logical_operator;color;tooltip
1;VAT miesięczny;vatStatus;equals;VAT_MONTHLY;;and;#22c55e;Rozliczenie VAT co miesiąc
1;VAT miesięczny;taxScheme;in;PIT_17|PIT_19;;;;
1;Kopia e-mail;receiveEmailCopy;equals;true;;;;
2;Ryzyko AML;amlGroup;in;ELEVATED|HIGH;;or;#ef4444;
2;Literówka;vatStatuss;equals;NO;;;;
;Bez firmy;vatStatus;equals;NO;;;;
"""


def _write(tmp_path: Path, content: str, name: str = "rules.csv", encoding: str = "utf-8") -> str:
    path = tmp_path / name
    path.write_text(content, encoding=encoding)
    return str(path)


def _icons(database):
    with database.get_session() as session:
        return {icon.name: icon for icon in session.scalars(select(ClientIcon)).all()}


def test_import_groups_rows_per_icon(database, tmp_path) -> None:
    path = _write(tmp_path, RULES_CSV)

    with database.get_session() as session:
        changed = IconRuleImporter(session).import_from_csv(path)

    assert sorted(icon.name for icon in changed) == ["Kopia e-mail", "Ryzyko AML", "VAT miesięczny"]

    icons = _icons(database)
    assert "Literówka" not in icons
    assert "Bez firmy" not in icons

    vat = icons["VAT miesięczny"]
    assert vat.company_id == 1
    assert vat.color == "#22c55e"
    assert vat.tooltip == "Rozliczenie VAT co miesiąc"
    assert vat.auto_assign_condition == {
        "logicalOperator": "and",
        "conditions": [
            {"field": "vatStatus", "operator": "equals", "value": "VAT_MONTHLY"},
            {"field": "taxScheme", "operator": "in", "value": ["PIT_17", "PIT_19"]},
        ],
    }
    assert icons["Kopia e-mail"].auto_assign_condition["conditions"][0]["value"] is True
    assert icons["Ryzyko AML"].auto_assign_condition["logicalOperator"] == "or"


def test_reimport_reports_only_changed_rules(database, tmp_path) -> None:
    path = _write(tmp_path, RULES_CSV)
    with database.get_session() as session:
        IconRuleImporter(session).import_from_csv(path)

    with database.get_session() as session:
        assert IconRuleImporter(session).import_from_csv(path) == []

    changed_csv = RULES_CSV.replace("ELEVATED|HIGH", "HIGH")
    with database.get_session() as session:
        changed = IconRuleImporter(session).import_from_csv(_write(tmp_path, changed_csv, "v2.csv"))

    assert [icon.name for icon in changed] == ["Ryzyko AML"]
    assert len(_icons(database)) == 3


def test_polish_headers_and_comma_delimiter(database, tmp_path) -> None:
    content = (
        "ID firmy,Nazwa ikony,Pole,Operator,Wartość,Druga wartość\n"
        "5,Średni klient,pkdCode,between,10,20\n"
    )
    path = _write(tmp_path, content, encoding="cp1250")

    with database.get_session() as session:
        changed = IconRuleImporter(session).import_from_csv(path)

    assert len(changed) == 1
    condition = changed[0].auto_assign_condition
    assert condition["conditions"] == [
        {"field": "pkdCode", "operator": "between", "value": "10", "secondValue": "20"}
    ]


def test_missing_file_raises(database, tmp_path) -> None:
    with database.get_session() as session:
        with pytest.raises(RuleImportError):
            IconRuleImporter(session).import_from_csv(str(tmp_path / "missing.csv"))


def test_missing_required_columns_raises(database, tmp_path) -> None:
    path = _write(tmp_path, "icon_name;value\nVAT;x\n")

    with database.get_session() as session:
        with pytest.raises(RuleImportError) as exc_info:
            IconRuleImporter(session).import_from_csv(path)

    assert exc_info.value.details["missing_columns"] == ["company_id", "field", "operator"]


def test_header_normalizer() -> None:
    assert HeaderNormalizer.normalize_header("  Nazwa_ikony* ") == "nazwa ikony"
    assert HeaderNormalizer.normalize_header("Wartość") == "wartosc"


def test_icon_with_an_invalid_row_is_skipped_whole(database, tmp_path) -> None:
    content = (
        "company_id;icon_name;field;operator;value\n"
        "1;VAT;vatStatus;equals;VAT_MONTHLY\n"
        "1;VAT;amlGroupp;equals;HIGH\n"
        "1;E-mail;email;isNotEmpty;\n"
    )

    with database.get_session() as session:
        changed = IconRuleImporter(session).import_from_csv(_write(tmp_path, content))

    assert [icon.name for icon in changed] == ["E-mail"]
    assert "VAT" not in _icons(database)


def test_invalid_row_keeps_existing_rule_untouched(database, tmp_path) -> None:
    with database.get_session() as session:
        IconRuleImporter(session).import_from_csv(_write(tmp_path, RULES_CSV))
    before = _icons(database)["VAT miesięczny"].auto_assign_condition

    content = (
        "company_id;icon_name;field;operator;value\n"
        "1;VAT miesięczny;vatStatus;equals;VAT_MONTHLY\n"
        "1;VAT miesięczny;taxScheme;startsWith;PIT\n"
    )
    with database.get_session() as session:
        changed = IconRuleImporter(session).import_from_csv(_write(tmp_path, content, "v2.csv"))

    assert changed == []
    assert _icons(database)["VAT miesięczny"].auto_assign_condition == before
