def _names(sio_client):
    return [pkt['name'] for pkt in sio_client.get_received('/ws')]


def _event(sio_client, name):
    for pkt in sio_client.get_received('/ws'):
        if pkt['name'] == name:
            return pkt['args'][0]
    return None


def test_connect_and_authenticate(sio_client):
    assert sio_client.is_connected('/ws')
    assert 'connected' in _names(sio_client)

    sio_client.emit('authenticate', {'user_id': 1, 'username': 'erin'}, namespace='/ws')
    assert _event(sio_client, 'authenticated')['success'] is True


def test_typing_data_raises_realtime_alert(sio_client):
    sio_client.get_received('/ws')  # flush
    sio_client.emit('subscribe_alerts', {'severity': 'High'}, namespace='/ws')
    assert 'alert_subscription_confirmed' in _names(sio_client)

    sio_client.emit('typing_data', {'user_id': 7, 'typing_cadence': [100, 100, 100, 100]}, namespace='/ws')
    received = sio_client.get_received('/ws')
    names = [pkt['name'] for pkt in received]
    assert 'typing_analysis_result' in names
    assert 'real_time_alert' in names
    result = next(pkt['args'][0] for pkt in received if pkt['name'] == 'typing_analysis_result')
    assert result['analysis']['variance'] == 0

    sio_client.emit('typing_data', {'typing_cadence': 'fast'}, namespace='/ws')
    assert _event(sio_client, 'analysis_error')['message'] == 'Typing analysis failed'


def test_mouse_data(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('mouse_data', {'user_id': 3, 'mouse_movements': [{'x': 1, 'y': 1}]}, namespace='/ws')
    result = _event(sio_client, 'mouse_analysis_result')
    assert result['analysis'] == {'is_bot': False, 'confidence': 0, 'reason': 'Insufficient data'}

    sio_client.emit('subscribe_alerts', {}, namespace='/ws')
    line = [{'x': i, 'y': 2 * i} for i in range(1, 13)]
    sio_client.emit('mouse_data', {'user_id': 3, 'mouse_movements': line}, namespace='/ws')
    received = sio_client.get_received('/ws')
    result = next(pkt['args'][0] for pkt in received if pkt['name'] == 'mouse_analysis_result')
    assert result['analysis']['is_bot'] is True
    assert 'real_time_alert' in [pkt['name'] for pkt in received]


def test_request_trust_update(sio_client, make_user):
    user = make_user(risk_level='Low')
    sio_client.get_received('/ws')
    sio_client.emit('request_trust_update', {'user_id': user['id']}, namespace='/ws')
    update = _event(sio_client, 'trust_score_update')
    assert update['current_score'] == user['trust_score']
    assert update['trend'] == 'increasing'

    sio_client.emit('request_trust_update', {'user_id': 999}, namespace='/ws')
    assert _event(sio_client, 'trust_update_error')['user_id'] == 999


def test_marketplace_activity(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('marketplace_activity', {'kind': 'purchase', 'product_id': 4}, namespace='/ws')
    update = _event(sio_client, 'marketplace_update')
    assert update['kind'] == 'purchase'
    assert update['connected_users'] >= 1


def test_realtime_http_broadcasts(client, sio_client):
    sio_client.emit('authenticate', {'username': 'mod'}, namespace='/ws')
    sio_client.emit('subscribe_alerts', {'severity': 'Critical'}, namespace='/ws')
    sio_client.get_received('/ws')

    stats = client.get('/api/realtime/stats').get_json()
    assert stats['connected_users'] >= 1
    assert stats['authenticated_users'] >= 1
    assert stats['active_rooms'] >= 2

    assert client.post('/api/realtime/broadcast-alert', json={}).status_code == 400
    res = client.post('/api/realtime/broadcast-alert', json={'type': 'Bot Behavior', 'severity': 'Critical'})
    assert res.status_code == 200
    names = _names(sio_client)
    assert 'new_alert' in names
    assert 'severity_alert' in names

    assert client.post('/api/realtime/trust-score-change', json={}).status_code == 400
    client.post('/api/realtime/trust-score-change',
                json={'user_id': 5, 'old_score': 60, 'new_score': 45, 'reason': 'chargeback'})
    changed = _event(sio_client, 'trust_score_changed')
    assert changed['change'] == -15
    assert changed['reason'] == 'chargeback'


def test_stored_alert_is_pushed_to_subscribers(client, sio_client):
    sio_client.emit('subscribe_alerts', {}, namespace='/ws')
    sio_client.get_received('/ws')
    client.post('/api/alerts/', json={
        'type': 'Fake Review Detection', 'target': '9', 'target_type': 'Review', 'severity': 'Medium',
        'description': 'Copied text',
    })
    alert = _event(sio_client, 'new_alert')
    assert alert['type'] == 'Fake Review Detection'
