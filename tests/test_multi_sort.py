from tests.test_lifecycle_helpers import seed_cast, submit_service_request


def test_service_requests_multi_sort(client, app_instance):
    cast = seed_cast(app_instance)
    created = [submit_service_request(client, cast, priority=p)['id'] for p in ('LOW', 'URGENT', 'HIGH')]
    resp = client.get('/service-requests?sort=priority,-id', headers=cast['requester'])
    assert resp.status_code == 200
    rows = [(r['priority'], r['id']) for r in resp.get_json()['data'] if r['id'] in created]
    # Ascending priority string, ties broken by descending id
    assert rows == sorted(rows, key=lambda t: (t[0], -t[1]))


def test_job_orders_sort_descending_id(client, app_instance):
    cast = seed_cast(app_instance)
    resp = client.get('/job-orders?status=all&sort=-id', headers=cast['president'])
    assert resp.status_code == 200
    ids = [j['id'] for j in resp.get_json()['data']]
    assert ids == sorted(ids, reverse=True)


def test_unknown_sort_field_rejected(client, app_instance):
    cast = seed_cast(app_instance)
    resp = client.get('/service-requests?sort=-colour', headers=cast['requester'])
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'Invalid sort field colour'


def test_parse_sort_tokens():
    from procureflow.utils.sorting import parse_sort
    assert parse_sort('-createdAt, srNumber,,') == [('createdAt', True), ('srNumber', False)]
    assert parse_sort(None) == []
