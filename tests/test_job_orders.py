from procureflow import get_db
from procureflow.models.audit import AuditLog
from tests.test_lifecycle_helpers import (
    seed_cast, submit_service_request, approved_service_request, service_job_order, material_job_order,
    assert_transition, create_resource_and_assert,
)


def test_job_order_requires_approved_service_request(client, app_instance):
    cast = seed_cast(app_instance)
    sr = submit_service_request(client, cast)
    resp = client.post('/job-orders', json={'srId': sr['id'], 'type': 'SERVICE'}, headers=cast['it_head'])
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == \
        'Service request must be APPROVED to create Job Order. Current status: SUBMITTED'


def test_job_order_copies_service_request_and_estimates_budget(client, app_instance):
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast, materials=[
        {'item': 'Cable', 'quantity': 3, 'estimatedCost': 10},
        {'item': 'Patch panel', 'quantity': 1, 'estimatedCost': 70},
    ])
    assert jo['joNumber'].startswith('JO-')
    assert jo['status'] == 'DRAFT'
    assert jo['type'] == 'MATERIAL_REQUISITION'
    assert jo['department'] == 'IT Department'
    assert jo['serviceCategory'] == 'Technical Support'
    assert jo['priorityLevel'] == 'HIGH'
    assert jo['budget']['estimatedTotalCost'] == 100
    assert jo['budget']['budgetSource'] == 'OPEX'


def test_only_handling_department_creates_job_order(client, app_instance):
    cast = seed_cast(app_instance)
    sr = approved_service_request(client, cast)
    resp = client.post('/job-orders', json={'srId': sr['id'], 'type': 'SERVICE'}, headers=cast['finance'])
    assert resp.status_code == 403
    resp = client.post('/job-orders', json={'srId': sr['id'], 'type': 'SERVICE'}, headers=cast['requester'])
    assert resp.status_code == 403
    resp = client.post('/job-orders', json={'srId': sr['id'], 'type': 'WHATEVER'}, headers=cast['it_head'])
    assert resp.status_code == 400


def test_second_job_order_names_existing(client, app_instance):
    cast = seed_cast(app_instance)
    sr = approved_service_request(client, cast)
    first = create_resource_and_assert(client, '/job-orders', {'srId': sr['id'], 'type': 'SERVICE'}, cast['it_head'])
    resp = client.post('/job-orders', json={'srId': sr['id'], 'type': 'SERVICE'}, headers=cast['it_head'])
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == \
        f"Job Order already exists for this Service Request. Existing JO: {first['joNumber']}"


def test_job_order_bad_payload(client, app_instance):
    cast = seed_cast(app_instance)
    assert client.post('/job-orders', json={}, headers=cast['it_head']).status_code == 400
    assert client.post('/job-orders', json={'srId': 'abc'}, headers=cast['it_head']).status_code == 400
    assert client.post('/job-orders', json={'srId': 999999}, headers=cast['it_head']).status_code == 404


def test_job_order_material_costs_must_be_numbers(client, app_instance):
    cast = seed_cast(app_instance)
    sr = approved_service_request(client, cast)
    resp = client.post('/job-orders', json={
        'srId': sr['id'], 'type': 'MATERIAL_REQUISITION',
        'materials': [{'item': 'Cable', 'quantity': 3, 'estimatedCost': 'cheap'}],
    }, headers=cast['it_head'])
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'materials.estimatedCost must be a number'

    jo = material_job_order(client, cast, materials=[{'item': 'Cable', 'quantity': '3', 'estimatedCost': '2.5'}])
    assert jo['budget']['estimatedTotalCost'] == 7.5
    resp = client.patch(f"/job-orders/{jo['id']}", json={'manpower': {'outsourcePrice': 'tbd'}},
                        headers=cast['it_head'])
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'manpower.outsourcePrice must be a number'


def test_service_job_order_management_approval(client, app_instance):
    cast = seed_cast(app_instance)
    jo = service_job_order(client, cast)
    url = f"/job-orders/{jo['id']}/approve"
    # Finance approval alone leaves a SERVICE Job Order in DRAFT
    assert_transition(client, 'POST', url, cast['finance'], {'role': 'FINANCE', 'action': 'APPROVED'}, 200, 'DRAFT')
    resp = assert_transition(client, 'POST', url, cast['president'], {'role': 'MANAGEMENT', 'action': 'APPROVED'},
                             200, 'APPROVED')
    roles = [a['role'] for a in resp.get_json()['approvals']]
    assert roles == ['FINANCE', 'MANAGEMENT']


def test_job_order_approval_role_gates(client, app_instance):
    cast = seed_cast(app_instance)
    jo = service_job_order(client, cast)
    url = f"/job-orders/{jo['id']}/approve"
    assert_transition(client, 'POST', url, cast['finance'], {'role': 'MANAGEMENT', 'action': 'APPROVED'}, 403)
    assert_transition(client, 'POST', url, cast['purchasing'], {'role': 'FINANCE', 'action': 'NOTED'}, 403)
    assert_transition(client, 'POST', url, cast['president'], {'role': 'CEO', 'action': 'APPROVED'}, 400)
    assert_transition(client, 'POST', url, cast['president'], {'role': 'MANAGEMENT', 'action': 'LIKED'}, 400)


def test_job_order_resubmission_replaces_same_role_entry(client, app_instance):
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast)
    url = f"/job-orders/{jo['id']}/approve"
    assert_transition(client, 'POST', url, cast['finance'], {'role': 'FINANCE', 'action': 'NOTED', 'comments': 'a'},
                      200, 'BUDGET_CLEARED')
    resp = assert_transition(client, 'POST', url, cast['finance'],
                             {'role': 'FINANCE', 'action': 'NOTED', 'comments': 'b'}, 200, 'BUDGET_CLEARED')
    approvals = resp.get_json()['approvals']
    assert len(approvals) == 1 and approvals[0]['comments'] == 'b'


def test_update_job_order_recomputes_budget(client, app_instance):
    cast = seed_cast(app_instance)
    jo = material_job_order(client, cast)
    resp = client.patch(f"/job-orders/{jo['id']}", json={
        'materials': [{'item': 'Switch', 'quantity': 4, 'estimatedCost': 25}],
        'manpower': {'assignedUnit': 'Contractor', 'outsourcePrice': 50},
        'location': 'Annex',
    }, headers=cast['it_head'])
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['budget']['estimatedTotalCost'] == 150
    assert body['location'] == 'Annex'


def test_job_order_detail_and_listing(client, app_instance):
    cast = seed_cast(app_instance)
    jo = service_job_order(client, cast)
    resp = client.get(f"/job-orders/{jo['id']}", headers=cast['requester'])
    assert resp.status_code == 200
    assert resp.get_json()['purchaseOrder'] is None

    assert_transition(client, 'PATCH', f"/job-orders/{jo['id']}/status", cast['president'], {'status': 'CLOSED'},
                      200, 'CLOSED')
    listed = client.get('/job-orders?limit=200&sort=-id', headers=cast['it_head']).get_json()['data']
    assert jo['id'] not in [j['id'] for j in listed]
    listed = client.get('/job-orders?status=all&limit=200&sort=-id', headers=cast['it_head']).get_json()['data']
    assert jo['id'] in [j['id'] for j in listed]
    listed = client.get('/job-orders?status=CLOSED&limit=200&sort=-id', headers=cast['it_head']).get_json()['data']
    closed = [j for j in listed if j['id'] == jo['id']]
    assert closed and closed[0]['closedAt'] is not None

    resp = client.patch(f"/job-orders/{jo['id']}", json={'location': 'x'}, headers=cast['it_head'])
    assert resp.status_code == 400


def test_status_endpoint_validates(client, app_instance):
    cast = seed_cast(app_instance)
    jo = service_job_order(client, cast)
    url = f"/job-orders/{jo['id']}/status"
    assert_transition(client, 'PATCH', url, cast['president'], {}, 400)
    assert_transition(client, 'PATCH', url, cast['president'], {'status': 'PAUSED'}, 400)


def test_job_order_actions_are_audited_with_status_diff(client, app_instance):
    cast = seed_cast(app_instance)
    jo = service_job_order(client, cast)
    assert_transition(client, 'POST', f"/job-orders/{jo['id']}/approve", cast['president'],
                      {'role': 'MANAGEMENT', 'action': 'APPROVED'}, 200, 'APPROVED')
    entries = get_db().query(AuditLog).filter(AuditLog.entity == 'JobOrder',
                                              AuditLog.entity_id == str(jo['id'])).all()
    actions = {e.action for e in entries}
    assert {'JO.CREATE', 'JO.APPROVE'} <= actions
    approve = [e for e in entries if e.action == 'JO.APPROVE'][0]
    assert approve.actor_user_id == cast.users['president'].id
    assert approve.meta['changes']['status'] == {'before': 'DRAFT', 'after': 'APPROVED'}
