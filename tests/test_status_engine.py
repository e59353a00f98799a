import pytest
from procureflow.errors import InvalidState
from procureflow.services.ledger import make_record
from procureflow.services.status import (
    derive_sr_status, derive_jo_status, derive_budget_status, derive_po_status, budget_fully_approved,
)

MR = 'MATERIAL_REQUISITION'
SERVICE = 'SERVICE'


def rec(role, action):
    return make_record(role, 1, 'x', action)


def test_sr_status_from_action():
    assert derive_sr_status('SUBMITTED', 'APPROVED') == 'APPROVED'
    assert derive_sr_status('SUBMITTED', 'REJECTED') == 'REJECTED'
    assert derive_sr_status('SUBMITTED', 'NOTED') == 'SUBMITTED'


@pytest.mark.parametrize('terminal', ['APPROVED', 'REJECTED'])
def test_sr_terminal_status_blocks_new_action(terminal):
    with pytest.raises(InvalidState) as exc:
        derive_sr_status(terminal, 'APPROVED')
    assert f'already {terminal}' in exc.value.description


def test_mr_finance_alone_stays_draft_and_both_budget_sign_offs_approve():
    finance = [rec('FINANCE', 'BUDGET_APPROVED')]
    assert derive_jo_status(MR, 'DRAFT', finance) == 'DRAFT'
    both = finance + [rec('MANAGEMENT', 'BUDGET_APPROVED')]
    assert budget_fully_approved(both)
    assert derive_jo_status(MR, 'DRAFT', both) == 'APPROVED'


def test_mr_any_approved_record_approves():
    assert derive_jo_status(MR, 'DRAFT', [rec('FINANCE', 'APPROVED')]) == 'APPROVED'


def test_mr_noted_clears_budget():
    assert derive_jo_status(MR, 'DRAFT', [rec('FINANCE', 'NOTED')]) == 'BUDGET_CLEARED'
    # APPROVED wins over NOTED
    assert derive_jo_status(MR, 'DRAFT', [rec('FINANCE', 'NOTED'), rec('MANAGEMENT', 'APPROVED')]) == 'APPROVED'


def test_service_requires_management_approval():
    assert derive_jo_status(SERVICE, 'DRAFT', [rec('FINANCE', 'APPROVED')]) == 'DRAFT'
    assert derive_jo_status(SERVICE, 'DRAFT', [rec('MANAGEMENT', 'APPROVED')]) == 'APPROVED'
    both = [rec('FINANCE', 'BUDGET_APPROVED'), rec('MANAGEMENT', 'BUDGET_APPROVED')]
    assert derive_jo_status(SERVICE, 'APPROVED', both + [rec('FINANCE', 'NOTED')]) == 'APPROVED'


@pytest.mark.parametrize('owned', ['IN_PROGRESS', 'COMPLETED', 'REJECTED', 'CLOSED'])
def test_command_owned_status_is_kept(owned):
    assert derive_jo_status(MR, owned, [rec('MANAGEMENT', 'APPROVED')]) == owned
    assert derive_jo_status(SERVICE, owned, [rec('MANAGEMENT', 'APPROVED')]) == owned


def test_pending_canvass_is_not_reset_to_draft():
    assert derive_jo_status(MR, 'PENDING_CANVASS', [rec('FINANCE', 'REVIEWED')]) == 'PENDING_CANVASS'
    assert derive_jo_status(MR, 'PENDING_CANVASS', [rec('MANAGEMENT', 'APPROVED')]) == 'APPROVED'


def test_budget_status_service_needs_both_sign_offs():
    finance = [rec('FINANCE', 'BUDGET_APPROVED')]
    assert derive_budget_status(SERVICE, 'DRAFT', finance) == 'DRAFT'
    both = finance + [rec('MANAGEMENT', 'BUDGET_APPROVED')]
    assert derive_budget_status(SERVICE, 'DRAFT', both) == 'APPROVED'
    assert derive_budget_status(SERVICE, 'IN_PROGRESS', both) == 'IN_PROGRESS'
    assert derive_budget_status(MR, 'DRAFT', both) == 'APPROVED'


def test_po_status_from_record():
    assert derive_po_status('DRAFT', rec('MANAGEMENT', 'APPROVED')) == 'APPROVED'
    # Finance approval alone does not approve the PO
    assert derive_po_status('SUBMITTED', rec('FINANCE', 'APPROVED')) == 'SUBMITTED'
    assert derive_po_status('SUBMITTED', rec('FINANCE', 'REJECTED')) == 'REJECTED'
    assert derive_po_status('DRAFT', rec('PURCHASING', 'SUBMITTED')) == 'SUBMITTED'
    assert derive_po_status('APPROVED', rec('PURCHASING', 'SUBMITTED')) == 'APPROVED'
