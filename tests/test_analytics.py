from tests.test_lifecycle_helpers import seed_cast, received_purchase_order


def _counts(rows, key):
    return {r[key]: r['count'] for r in rows}


def test_analytics_counts_new_documents(client, app_instance):
    cast = seed_cast(app_instance)
    before = client.get('/analytics?timeRange=week', headers=cast['admin']).get_json()
    jo, po = received_purchase_order(client, cast)
    resp = client.get('/analytics?timeRange=week', headers=cast['admin'])
    assert resp.status_code == 200
    after = resp.get_json()
    assert after['timeRange'] == 'week'

    assert after['serviceRequests']['total'] == before['serviceRequests']['total'] + 1
    assert after['jobOrders']['total'] == before['jobOrders']['total'] + 1
    assert after['purchaseOrders']['total'] == before['purchaseOrders']['total'] + 1

    types_before = _counts(before['jobOrders']['byType'], 'type')
    types_after = _counts(after['jobOrders']['byType'], 'type')
    assert types_after['MATERIAL_REQUISITION'] == types_before.get('MATERIAL_REQUISITION', 0) + 1
    status_after = _counts(after['purchaseOrders']['byStatus'], 'status')
    assert status_after['RECEIVED'] == _counts(before['purchaseOrders']['byStatus'], 'status').get('RECEIVED', 0) + 1
    assert after['purchaseOrders']['totalValue'] == before['purchaseOrders']['totalValue'] + po['totalAmount']

    assert after['trends']['thisMonth']['serviceRequests'] == before['trends']['thisMonth']['serviceRequests'] + 1
    sr_to_jo = after['responseTimes']['srToJo']
    assert sr_to_jo['totalProcessed'] == before['responseTimes']['srToJo']['totalProcessed'] + 1
    jo_to_po = after['responseTimes']['joToPo']
    assert jo_to_po['totalProcessed'] == before['responseTimes']['joToPo']['totalProcessed'] + 1
    assert len(jo_to_po['slowest']) <= 5


def test_analytics_buckets_are_largest_first(client, app_instance):
    cast = seed_cast(app_instance)
    received_purchase_order(client, cast)
    body = client.get('/analytics', headers=cast['president']).get_json()
    counts = [r['count'] for r in body['serviceRequests']['byCategory']]
    assert counts == sorted(counts, reverse=True)
    assert body['timeRange'] == 'all'


def test_analytics_time_range_and_access(client, app_instance):
    cast = seed_cast(app_instance)
    resp = client.get('/analytics?timeRange=year', headers=cast['admin'])
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'timeRange must be one of week, month, all'
    assert client.get('/analytics', headers=cast['requester']).status_code == 403
    assert client.get('/analytics').status_code == 401
    assert client.get('/analytics?timeRange=month', headers=cast['it_head']).status_code == 200
