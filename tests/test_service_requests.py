from tests.test_lifecycle_helpers import (
    seed_cast, submit_service_request, approved_service_request, assert_transition, create_resource_and_assert,
)


def test_create_service_request_defaults(client, app_instance):
    cast = seed_cast(app_instance)
    sr = submit_service_request(client, cast)
    assert sr['srNumber'].startswith('SR-')
    assert len(sr['srNumber'].split('-')[-1]) == 4
    assert sr['department'] == 'IT Department'
    assert sr['requestedBy'] == cast.users['requester'].name
    assert sr['priority'] == 'HIGH'
    assert sr['approvals'] == []


def test_create_service_request_validation(client, app_instance):
    cast = seed_cast(app_instance)
    resp = client.post('/service-requests', json={'serviceCategory': 'Technical Support'}, headers=cast['requester'])
    assert resp.status_code == 400
    assert 'workDescription' in resp.get_json()['error']['detail']
    resp = client.post('/service-requests', json={'serviceCategory': 'Other', 'workDescription': 'x',
                                                  'priority': 'WHENEVER'}, headers=cast['requester'])
    assert resp.status_code == 400


def test_department_head_approves(client, app_instance):
    cast = seed_cast(app_instance)
    sr = approved_service_request(client, cast)
    assert sr['status'] == 'APPROVED'
    assert len(sr['approvals']) == 1
    entry = sr['approvals'][0]
    assert entry['role'] == 'DEPARTMENT_HEAD'
    assert entry['userId'] == str(cast.users['it_head'].id)
    assert entry['action'] == 'APPROVED'


def test_other_department_cannot_approve(client, app_instance):
    cast = seed_cast(app_instance)
    sr = submit_service_request(client, cast)
    assert_transition(client, 'POST', f"/service-requests/{sr['id']}/approve", cast['maintenance_head'],
                      {'action': 'APPROVED'}, 403)
    assert_transition(client, 'POST', f"/service-requests/{sr['id']}/approve", cast['requester'],
                      {'action': 'APPROVED'}, 403)


def test_admin_approval_is_recorded_as_management(client, app_instance):
    cast = seed_cast(app_instance)
    sr = submit_service_request(client, cast)
    resp = assert_transition(client, 'POST', f"/service-requests/{sr['id']}/approve", cast['president'],
                             {'action': 'APPROVED'}, 200, 'APPROVED')
    assert resp.get_json()['approvals'][0]['role'] == 'MANAGEMENT'


def test_duplicate_and_terminal_approvals(client, app_instance):
    cast = seed_cast(app_instance)
    sr = approved_service_request(client, cast)
    url = f"/service-requests/{sr['id']}/approve"
    # Same user, same action: duplicate
    resp = assert_transition(client, 'POST', url, cast['it_head'], {'action': 'APPROVED'}, 400)
    assert 'already APPROVED by this user' in resp.get_json()['error']['detail']
    # Different action on a terminal request
    resp = assert_transition(client, 'POST', url, cast['it_head'], {'action': 'REJECTED'}, 400)
    assert 'Service Request is already APPROVED' in resp.get_json()['error']['detail']


def test_reject_and_invalid_action(client, app_instance):
    cast = seed_cast(app_instance)
    sr = submit_service_request(client, cast)
    url = f"/service-requests/{sr['id']}/approve"
    assert_transition(client, 'POST', url, cast['it_head'], {'action': 'MAYBE'}, 400)
    assert_transition(client, 'POST', url, cast['it_head'], {'action': 'REJECTED', 'comments': 'No budget'},
                      200, 'REJECTED')


def test_update_only_while_submitted_and_by_creator(client, app_instance):
    cast = seed_cast(app_instance)
    sr = submit_service_request(client, cast)
    url = f"/service-requests/{sr['id']}"
    resp = client.patch(url, json={'location': 'Server room B'}, headers=cast['requester'])
    assert resp.status_code == 200, resp.get_json()
    assert resp.get_json()['location'] == 'Server room B'
    resp = client.patch(url, json={'location': 'Lobby'}, headers=cast['it_head'])
    assert resp.status_code == 403
    assert_transition(client, 'POST', f'{url}/approve', cast['it_head'], {'action': 'APPROVED'}, 200, 'APPROVED')
    resp = client.patch(url, json={'location': 'Lobby'}, headers=cast['requester'])
    assert resp.status_code == 400


def test_requester_lists_only_own_requests(client, app_instance):
    cast = seed_cast(app_instance)
    other = seed_cast(app_instance)
    mine = submit_service_request(client, cast)
    theirs = submit_service_request(client, other)
    ids = [r['id'] for r in client.get('/service-requests?limit=200', headers=cast['requester']).get_json()['data']]
    assert mine['id'] in ids
    assert theirs['id'] not in ids
    resp = client.get('/service-requests?status=SUBMITTED&limit=200', headers=cast['it_head'])
    ids = [r['id'] for r in resp.get_json()['data']]
    assert theirs['id'] in ids
    assert client.get('/service-requests?status=NOPE', headers=cast['it_head']).status_code == 400


def test_approved_without_job_order_listing(client, app_instance):
    cast = seed_cast(app_instance)
    it_sr = approved_service_request(client, cast)
    maint_sr = approved_service_request(client, cast, category='Facility Maintenance', approver='it_head')
    ids = [r['id'] for r in client.get('/service-requests/approved?limit=200', headers=cast['it_head']).get_json()['data']]
    assert it_sr['id'] in ids
    assert maint_sr['id'] not in ids
    ids = [r['id'] for r in client.get('/service-requests/approved?limit=200',
                                       headers=cast['maintenance_head']).get_json()['data']]
    assert maint_sr['id'] in ids
    # Once a Job Order exists the request drops out of the queue
    create_resource_and_assert(client, '/job-orders', {'srId': it_sr['id'], 'type': 'SERVICE'}, cast['it_head'])
    ids = [r['id'] for r in client.get('/service-requests/approved?limit=200', headers=cast['president']).get_json()['data']]
    assert it_sr['id'] not in ids
    assert maint_sr['id'] in ids
