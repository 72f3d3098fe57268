ALERT = {
    'type': 'Bot Behavior',
    'target': '42',
    'target_type': 'User',
    'severity': 'High',
    'description': 'Scripted checkout attempts',
    'actions': ['Manual Review'],
}


def test_create_and_list_alerts(client):
    res = client.post('/api/alerts/', json=ALERT)
    assert res.status_code == 201
    alert = res.get_json()
    assert alert['status'] == 'Active'
    assert alert['source'] == 'api'
    assert alert['resolved_at'] is None

    listed = client.get('/api/alerts/').get_json()
    assert [a['id'] for a in listed] == [alert['id']]
    assert len(client.get('/api/alerts/severity/High').get_json()) == 1
    assert client.get('/api/alerts/severity/Low').get_json() == []
    assert len(client.get('/api/alerts/type/Bot%20Behavior').get_json()) == 1


def test_alert_validation(client):
    res = client.post('/api/alerts/', json={'type': 'Bot Behavior'})
    assert res.status_code == 400
    assert res.get_json()['error'].startswith('Missing required fields')
    assert client.post('/api/alerts/', json=dict(ALERT, severity='Apocalyptic')).status_code == 400
    assert client.post('/api/alerts/', json=dict(ALERT, type='Weird')).status_code == 400
    assert client.post('/api/alerts/', json=dict(ALERT, actions=['Ban Forever'])).status_code == 400


def test_update_resolve_and_dismiss(client):
    first = client.post('/api/alerts/', json=ALERT).get_json()
    second = client.post('/api/alerts/', json=dict(ALERT, severity='Low')).get_json()

    res = client.put(f"/api/alerts/{first['id']}", json={'severity': 'Critical', 'data': {'ip': '10.0.0.9'}})
    assert res.status_code == 200
    assert res.get_json()['severity'] == 'Critical'
    assert res.get_json()['data'] == {'ip': '10.0.0.9'}
    assert client.put(f"/api/alerts/{first['id']}", json={'status': 'Ignored'}).status_code == 400

    resolved = client.put(f"/api/alerts/{first['id']}/resolve").get_json()
    assert resolved['status'] == 'Resolved'
    assert resolved['resolved_at'] is not None
    dismissed = client.put(f"/api/alerts/{second['id']}/dismiss").get_json()
    assert dismissed['status'] == 'Dismissed'

    assert client.get('/api/alerts/').get_json() == []
    assert client.put('/api/alerts/999/resolve').status_code == 404


def test_alert_stats(client):
    client.post('/api/alerts/', json=ALERT)
    client.post('/api/alerts/', json=dict(ALERT, severity='Low', type='Rapid Activity'))
    stats = client.get('/api/alerts/stats').get_json()
    assert stats['total'] == 2
    assert stats['active'] == 2
    assert stats['by_severity'] == {'High': 1, 'Low': 1}
    assert stats['by_type'] == {'Bot Behavior': 1, 'Rapid Activity': 1}
