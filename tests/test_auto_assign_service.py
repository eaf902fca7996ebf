from __future__ import annotations

from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from client_icons.core.constants import VatStatus
from client_icons.models import Client, ClientIconAssignment
from client_icons.services import AutoAssignService, IconAssignmentRepository

MONTHLY_VAT = {
    "logicalOperator": "and",
    "conditions": [{"field": "vatStatus", "operator": "equals", "value": "VAT_MONTHLY"}],
}
HAS_EMAIL = {
    "logicalOperator": "and",
    "conditions": [{"field": "email", "operator": "isNotEmpty"}],
}


def _reconcile(database, client_id):
    with database.get_session() as session:
        client = session.get(Client, client_id)
        return AutoAssignService().evaluate_and_assign(session, client)


def test_assigns_matching_icons_and_skips_others(database, make_client, make_icon, assignments) -> None:
    vat_icon = make_icon(name="VAT", condition=MONTHLY_VAT)
    email_icon = make_icon(name="E-mail", condition=HAS_EMAIL)
    client = make_client(vat_status=VatStatus.VAT_MONTHLY)

    result = _reconcile(database, client.id)

    assert result.added == [vat_icon.id]
    assert result.removed == []
    assert assignments(client_id=client.id) == [(client.id, vat_icon.id, True)]
    assert email_icon.id not in result.failed_icon_ids


def test_second_run_is_a_no_op(database, make_client, make_icon, assignments) -> None:
    make_icon(condition=MONTHLY_VAT)
    client = make_client(vat_status=VatStatus.VAT_MONTHLY)

    _reconcile(database, client.id)
    before = assignments()
    result = _reconcile(database, client.id)

    assert not result.changed
    assert assignments() == before


def test_removes_auto_icon_when_client_stops_matching(database, make_client, make_icon, update_client, assignments) -> None:
    icon = make_icon(condition=MONTHLY_VAT)
    client = make_client(vat_status=VatStatus.VAT_MONTHLY)
    _reconcile(database, client.id)

    update_client(client.id, vat_status=VatStatus.VAT_QUARTERLY)
    result = _reconcile(database, client.id)

    assert result.removed == [icon.id]
    assert assignments() == []


def test_toggling_attribute_adds_then_removes(database, make_client, make_icon, update_client, assignments) -> None:
    icon = make_icon(condition=MONTHLY_VAT)
    client = make_client(vat_status=VatStatus.NO)

    for status, expected in [
        (VatStatus.VAT_MONTHLY, [(client.id, icon.id, True)]),
        (VatStatus.NO, []),
        (VatStatus.VAT_MONTHLY, [(client.id, icon.id, True)]),
    ]:
        update_client(client.id, vat_status=status)
        _reconcile(database, client.id)
        assert assignments() == expected


def test_manual_assignment_is_never_removed(database, make_client, make_icon, assign, assignments) -> None:
    icon = make_icon(condition=MONTHLY_VAT)
    client = make_client(vat_status=VatStatus.NO)
    assign(client.id, icon.id, is_auto=False)

    result = _reconcile(database, client.id)

    assert result.removed == []
    assert assignments() == [(client.id, icon.id, False)]


def test_manual_assignment_of_matching_icon_is_left_manual(database, make_client, make_icon, assign, assignments) -> None:
    icon = make_icon(condition=MONTHLY_VAT)
    client = make_client(vat_status=VatStatus.VAT_MONTHLY)
    assign(client.id, icon.id, is_auto=False)

    result = _reconcile(database, client.id)

    assert result.added == []
    assert result.skipped == 1
    assert assignments() == [(client.id, icon.id, False)]


def test_icons_of_other_companies_are_ignored(database, make_client, make_icon, assignments) -> None:
    make_icon(company_id=2, condition=MONTHLY_VAT)
    client = make_client(company_id=1, vat_status=VatStatus.VAT_MONTHLY)

    result = _reconcile(database, client.id)

    assert result.added == []
    assert assignments() == []


def test_failing_rule_is_isolated_and_keeps_existing_assignment(database, make_client, make_icon, assign, assignments) -> None:
    broken = make_icon(name="Broken", condition={
        "logicalOperator": "and",
        "conditions": [{"field": "pkdCode", "operator": "greaterThan", "value": 10}],
    })
    good = make_icon(name="Good", condition=MONTHLY_VAT)
    client = make_client(vat_status=VatStatus.VAT_MONTHLY, pkd_code="62.01.Z")
    assign(client.id, broken.id, is_auto=True)

    result = _reconcile(database, client.id)

    assert result.failed_icon_ids == [broken.id]
    assert result.added == [good.id]
    assert assignments() == sorted([(client.id, broken.id, True), (client.id, good.id, True)])


def test_unknown_field_in_rule_is_isolated(database, make_client, make_icon, assignments) -> None:
    bad = make_icon(name="Typo", condition={
        "logicalOperator": "and",
        "conditions": [{"field": "vatStatuss", "operator": "equals", "value": "NO"}],
    })
    good = make_icon(name="Good", condition=HAS_EMAIL)
    client = make_client(email="biuro@example.pl")

    result = _reconcile(database, client.id)

    assert result.failed_icon_ids == [bad.id]
    assert assignments() == [(client.id, good.id, True)]


def test_icon_losing_its_rule_is_removed_from_client(database, make_client, make_icon, update_icon, assignments) -> None:
    icon = make_icon(condition=HAS_EMAIL)
    client = make_client(email="biuro@example.pl")
    _reconcile(database, client.id)

    update_icon(icon.id, auto_assign_condition=None)
    result = _reconcile(database, client.id)

    assert result.removed == [icon.id]
    assert assignments() == []


def test_concurrent_insert_between_check_and_write_is_skipped(database, make_client, make_icon, assign, assignments) -> None:
    icon = make_icon(condition=HAS_EMAIL)
    client = make_client(email="biuro@example.pl")

    real_find = IconAssignmentRepository.find_assignment

    def find_then_race(self, client_id, icon_id):
        found = real_find(self, client_id, icon_id)
        # Another reconciliation commits the same row right after our check
        self.session.add(ClientIconAssignment(client_id=client_id, icon_id=icon_id, is_auto_assigned=True))
        self.session.flush()
        return found

    with mock.patch.object(IconAssignmentRepository, "find_assignment", find_then_race):
        result = _reconcile(database, client.id)

    assert result.added == []
    assert result.skipped == 1
    assert assignments() == [(client.id, icon.id, True)]


def test_storage_error_propagates(database, make_client, make_icon) -> None:
    make_icon(condition=HAS_EMAIL)
    client = make_client(email="biuro@example.pl")

    with mock.patch.object(
        IconAssignmentRepository,
        "insert_assignment_if_absent",
        side_effect=OperationalError("INSERT", {}, Exception("disk I/O error")),
    ):
        with pytest.raises(OperationalError):
            _reconcile(database, client.id)


def test_rule_value_too_large_for_a_float_is_isolated(database, make_client, make_icon, assignments) -> None:
    huge = make_icon(name="Huge", condition={
        "logicalOperator": "and",
        "conditions": [{"field": "nip", "operator": "greaterThan", "value": 10 ** 400}],
    })
    good = make_icon(name="Good", condition={
        "logicalOperator": "and",
        "conditions": [{"field": "name", "operator": "equals", "value": "Klient"}],
    })
    client = make_client(nip="5260250995")

    result = _reconcile(database, client.id)

    assert result.failed_icon_ids == [huge.id]
    assert result.added == [good.id]
    assert assignments() == [(client.id, good.id, True)]
