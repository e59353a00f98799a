from procureflow import get_db
from procureflow.models.notification import Notification
from tests.test_lifecycle_helpers import (
    seed_cast, material_job_order, service_job_order, budget_approved_job_order, assert_transition,
)


def test_president_cannot_act_before_finance(client, app_instance):
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast)
    resp = assert_transition(client, 'PATCH', f"/job-orders/{jo['id']}/budget", cast['president'],
                             {'action': 'APPROVE'}, 400)
    assert resp.get_json()['error']['detail'] == \
        'Finance must approve the budget before President can update or approve it'


def test_budget_requires_finance_or_president(client, app_instance):
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast)
    assert_transition(client, 'PATCH', f"/job-orders/{jo['id']}/budget", cast['purchasing'],
                      {'action': 'APPROVE'}, 403)
    assert_transition(client, 'PATCH', f"/job-orders/{jo['id']}/budget", cast['finance'],
                      {'action': 'SHRUG'}, 400)


def test_material_requisition_budget_two_step_approval(client, app_instance):
    cast = seed_cast(app_instance)
    jo = budget_approved_job_order(client, cast, materials=[{'item': 'Drive', 'estimatedCost': 100, 'quantity': 2}])
    assert jo['budget']['estimatedTotalCost'] == 200
    stamps = {(a['role'], a['action']) for a in jo['approvals']}
    assert stamps == {('FINANCE', 'BUDGET_APPROVED'), ('MANAGEMENT', 'BUDGET_APPROVED')}
    notes = get_db().query(Notification).filter_by(entity_type='JobOrder', entity_id=str(jo['id'])).all()
    types = {(n.type, n.recipient) for n in notes}
    assert ('BUDGET_NEEDS_APPROVAL', 'management') in types
    assert ('BUDGET_APPROVED', 'purchasing') in types


def test_budget_override_and_figures_without_action(client, app_instance):
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast)
    resp = assert_transition(client, 'PATCH', f"/job-orders/{jo['id']}/budget", cast['finance'],
                             {'budget': {'estimatedTotalCost': 450, 'costCenter': 'CC-12'}}, 200, 'DRAFT')
    body = resp.get_json()
    assert body['budget']['estimatedTotalCost'] == 450
    assert body['budget']['costCenter'] == 'CC-12'
    assert body['approvals'] == []
    # Without an override the total is recomputed from materials
    resp = assert_transition(client, 'PATCH', f"/job-orders/{jo['id']}/budget", cast['finance'],
                             {'budget': {'notes': 'recheck'}}, 200)
    assert resp.get_json()['budget']['estimatedTotalCost'] == 200


def test_service_job_order_budget_needs_both_sign_offs(client, app_instance):
    cast = seed_cast(app_instance)
    jo = service_job_order(client, cast)
    url = f"/job-orders/{jo['id']}/budget"
    assert_transition(client, 'PATCH', url, cast['finance'], {'action': 'APPROVE'}, 200, 'DRAFT')
    assert_transition(client, 'PATCH', url, cast['president'], {'action': 'APPROVE'}, 200, 'APPROVED')


def test_service_budget_approval_survives_later_ledger_entries(client, app_instance):
    cast = seed_cast(app_instance)
    jo = service_job_order(client, cast)
    url = f"/job-orders/{jo['id']}"
    assert_transition(client, 'PATCH', f'{url}/budget', cast['finance'], {'action': 'APPROVE'}, 200, 'DRAFT')
    assert_transition(client, 'PATCH', f'{url}/budget', cast['president'], {'action': 'APPROVE'}, 200, 'APPROVED')
    assert_transition(client, 'POST', f'{url}/approve', cast['finance'],
                      {'role': 'FINANCE', 'action': 'NOTED'}, 200, 'APPROVED')
    assert client.get(url, headers=cast['it_head']).get_json()['status'] == 'APPROVED'


def test_president_edits_budget_fields_before_finance(client, app_instance):
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast)
    url = f"/job-orders/{jo['id']}/budget"
    resp = assert_transition(client, 'PATCH', url, cast['president'], {'budget': {'costCenter': 'CC-1'}}, 200, 'DRAFT')
    assert resp.get_json()['budget']['costCenter'] == 'CC-1'
    assert resp.get_json()['approvals'] == []
    # Restating the current total is not a change
    assert_transition(client, 'PATCH', url, cast['president'], {'budget': {'estimatedTotalCost': 200}}, 200)
    resp = assert_transition(client, 'PATCH', url, cast['president'], {'budget': {'estimatedTotalCost': 900}}, 400)
    assert resp.get_json()['error']['detail'] == \
        'Finance must approve the budget before President can update or approve it'


def test_budget_rejection_rejects_job_order_and_service_request(client, app_instance):
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast)
    assert_transition(client, 'PATCH', f"/job-orders/{jo['id']}/budget", cast['finance'],
                      {'action': 'REJECT', 'comments': 'Too expensive'}, 200, 'REJECTED')
    sr = client.get(f"/service-requests/{jo['srId']}", headers=cast['it_head']).get_json()
    assert sr['status'] == 'REJECTED'
    notes = get_db().query(Notification).filter_by(entity_id=str(jo['id']), type='BUDGET_REJECTED').all()
    assert [n.recipient for n in notes] == ['it']
    assert notes[0].message == 'Too expensive'


def test_canvass_requires_pending_status(client, app_instance):
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast)
    resp = assert_transition(client, 'POST', f"/job-orders/{jo['id']}/canvass", cast['purchasing'],
                             {'materials': [{'item': 'Switch', 'estimatedCost': 180}]}, 400)
    assert resp.get_json()['error']['detail'] == 'Job Order is not pending canvass. Current status: DRAFT'


def test_canvass_flow_from_pending(client, app_instance, monkeypatch):
    monkeypatch.setitem(app_instance.config, 'JO_MR_INITIAL_STATUS', 'PENDING_CANVASS')
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast)
    assert jo['status'] == 'PENDING_CANVASS'
    url = f"/job-orders/{jo['id']}/canvass"
    assert_transition(client, 'POST', url, cast['finance'], {'materials': [{'estimatedCost': 1}]}, 403)
    assert_transition(client, 'POST', url, cast['purchasing'], {'materials': []}, 400)
    resp = assert_transition(client, 'POST', url, cast['purchasing'], {'materials': [
        {'item': 'Switch 24p', 'quantity': 2, 'estimatedCost': 180, 'supplier': 'Northwind'},
        {'item': 'Cables', 'quantity': 10, 'estimatedCost': 40},
    ]}, 200, 'DRAFT')
    body = resp.get_json()
    # Canvass prices are line totals
    assert body['budget']['estimatedTotalCost'] == 220
    assert body['approvals'][-1]['role'] == 'PURCHASING'
    assert body['approvals'][-1]['action'] == 'CANVASS_COMPLETED'
    notes = get_db().query(Notification).filter_by(entity_id=str(jo['id']), type='CANVASS_COMPLETED').all()
    assert [n.recipient for n in notes] == ['finance']


def test_pending_canvass_survives_ledger_recompute(client, app_instance, monkeypatch):
    monkeypatch.setitem(app_instance.config, 'JO_MR_INITIAL_STATUS', 'PENDING_CANVASS')
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast)
    assert_transition(client, 'POST', f"/job-orders/{jo['id']}/approve", cast['finance'],
                      {'role': 'FINANCE', 'action': 'REVIEWED'}, 200, 'PENDING_CANVASS')


def test_canvass_gate_can_be_disabled(client, app_instance, monkeypatch):
    monkeypatch.setitem(app_instance.config, 'CANVASS_REQUIRES_PENDING', False)
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast)
    assert_transition(client, 'POST', f"/job-orders/{jo['id']}/canvass", cast['purchasing'],
                      {'materials': [{'item': 'Switch', 'estimatedCost': 180}]}, 200, 'DRAFT')


def test_canvass_rejected_for_service_job_order(client, app_instance):
    cast = seed_cast(app_instance)
    jo = service_job_order(client, cast)
    resp = assert_transition(client, 'POST', f"/job-orders/{jo['id']}/canvass", cast['purchasing'],
                             {'materials': [{'estimatedCost': 10}]}, 400)
    assert 'SERVICE' in resp.get_json()['error']['detail']
