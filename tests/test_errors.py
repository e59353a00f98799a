def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    # Flask default 404 should be wrapped by error handler
    assert resp.status_code == 404
    body = resp.get_json()
    assert 'error' in body
    assert body['error']['status'] == 404
    assert 'detail' in body['error']


def test_missing_token_is_401_in_error_shape(client):
    resp = client.get('/service-requests')
    assert resp.status_code == 401
    body = resp.get_json()
    assert body['error']['status'] == 401
    assert body['error']['title'] == 'Unauthorized'


def test_garbage_token_is_401(client):
    resp = client.get('/job-orders', headers={'Authorization': 'Bearer not-a-jwt'})
    assert resp.status_code == 401


def test_missing_document_is_404_with_label(client, app_instance):
    from tests.test_lifecycle_helpers import seed_cast
    cast = seed_cast(app_instance)
    resp = client.get('/job-orders/987654', headers=cast['it_head'])
    assert resp.status_code == 404
    assert resp.get_json()['error']['detail'] == 'Job Order not found'


def test_internal_error_shape(client, app_instance, monkeypatch):
    from tests.test_lifecycle_helpers import seed_cast
    import procureflow.routes.service_requests as sr_mod
    cast = seed_cast(app_instance)

    class BoomSession:
        def query(self, *a, **k):
            raise RuntimeError('explode')

    monkeypatch.setattr(sr_mod, 'get_db', lambda: BoomSession())
    resp = client.get('/service-requests', headers=cast['requester'])
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['error']['status'] == 500
    assert body['error']['title'] == 'Internal Server Error'
    assert body['error']['detail'] == 'Unexpected error'


def test_healthz(client):
    assert client.get('/healthz').get_json() == {'status': 'ok'}
