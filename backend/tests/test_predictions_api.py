def test_trust_prediction(client, make_user):
    user = make_user(account_age=60, transaction_count=20, risk_level='Low')
    res = client.get(f"/api/predictions/trust/{user['id']}")
    assert res.status_code == 200
    data = res.get_json()
    assert data['prediction'] == 'yes'
    assert data['confidence'] == 83
    assert data['factors']['current_trust_score'] == user['trust_score']
    assert data['model_version'] == 'TrustPredict-v1.0'

    assert client.get(f"/api/predictions/trust/{user['id']}?timeframe_days=0").status_code == 400
    assert client.get(f"/api/predictions/trust/{user['id']}?target_score=101").status_code == 400
    assert client.get('/api/predictions/trust/999').status_code == 404


def test_fraud_prediction_for_bot(client):
    user = client.post('/api/users/', json={
        'username': 'script', 'email': 'script@example.com', 'mobile_number': '+1-555-0888', 'password': 'pw',
        'behavior_data': {'typing_cadence': [80, 80, 80, 80, 80, 80]},
    }).get_json()['user']
    data = client.get(f"/api/predictions/fraud/{user['id']}?timeframe_days=7").get_json()
    assert data['prediction'] == 'yes'
    assert data['fraud_score'] == 65
    assert data['timeframe_days'] == 7
    assert 'Very low trust score' in data['reasoning']
    assert client.get('/api/predictions/fraud/999').status_code == 404


def test_odds(client):
    assert client.get('/api/predictions/odds?confidence=80&prediction=yes').get_json() == {'yes': 1.25, 'no': 5.0}
    assert client.get('/api/predictions/odds?confidence=150').status_code == 400
    assert client.get('/api/predictions/odds?confidence=50&prediction=perhaps').status_code == 400


def test_market_suggestions(client, make_user):
    assert client.get('/api/predictions/market-suggestions').get_json() == {'count': 0, 'suggestions': []}
    user = make_user(account_age=60, transaction_count=20, risk_level='Low')
    data = client.get('/api/predictions/market-suggestions').get_json()
    assert data['count'] >= 1
    first = data['suggestions'][0]
    assert first['type'] == 'trust_score_prediction'
    assert first['target_user'] == user['id']
    assert first['suggested_odds']['yes'] == 1.2
    assert client.get('/api/predictions/market-suggestions?limit=0').status_code == 400
