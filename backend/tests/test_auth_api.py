from conftest import auth_header


def test_health(client):
    res = client.get('/api/health')
    assert res.status_code == 200
    assert res.get_json()['status'] == 'ok'


def test_customer_signup_and_login(client):
    res = client.post('/api/auth/customer/signup', json={
        'username': 'alice', 'email': 'alice@example.com', 'mobile_number': '+1-555-0101', 'password': 'secret',
    })
    assert res.status_code == 201
    data = res.get_json()
    assert data['user']['username'] == 'alice'
    assert 'password_hash' not in data['user']
    assert data['token']

    res = client.post('/api/auth/customer/login', json={'email': 'alice@example.com', 'password': 'secret'})
    assert res.status_code == 200
    # each login is recorded on the behaviour profile
    assert len(res.get_json()['user']['behavior_data']['login_times']) == 2

    res = client.post('/api/auth/customer/login', json={'email': 'alice@example.com', 'password': 'nope'})
    assert res.status_code == 401
    assert res.get_json()['error'] == 'Invalid email or password'


def test_customer_signup_requires_fields(client):
    res = client.post('/api/auth/customer/signup', json={'username': 'bob'})
    assert res.status_code == 400
    assert 'Missing required fields' in res.get_json()['error']


def test_duplicate_customer_is_conflict(client):
    payload = {'username': 'alice', 'email': 'alice@example.com', 'mobile_number': '+1-555-0101',
               'password': 'secret'}
    assert client.post('/api/auth/customer/signup', json=payload).status_code == 201
    res = client.post('/api/auth/customer/signup', json=payload)
    assert res.status_code == 409


def test_vendor_signup_validation(client, vendor_account):
    assert vendor_account['vendor']['trust_score'] == 50
    assert vendor_account['vendor']['addresses'][0]['operation_type'] == 'warehouse'

    res = client.post('/api/auth/vendor/signup', json={
        'name': 'Other Name', 'company_email': 'sales@acme.test', 'password': 'x',
        'addresses': [{'operation_type': 'warehouse'}],
    })
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Vendor with this email already exists'

    res = client.post('/api/auth/vendor/signup', json={
        'name': 'New Vendor', 'company_email': 'new@vendor.test', 'password': 'x',
        'addresses': [{'operation_type': 'spaceport'}],
    })
    assert res.status_code == 400
    assert 'operation_type' in res.get_json()['error']

    res = client.post('/api/auth/vendor/signup', json={'name': 'No Email'})
    assert res.status_code == 400


def test_vendor_login(client, vendor_account):
    res = client.post('/api/auth/vendor/login', json={'company_email': 'sales@acme.test', 'password': 'vendorpass'})
    assert res.status_code == 200
    assert res.get_json()['vendor']['name'] == 'Acme Audio'
    res = client.post('/api/auth/vendor/login', json={'company_email': 'sales@acme.test', 'password': 'wrong'})
    assert res.status_code == 401


def test_vendor_routes_require_vendor_role(client, vendor_account):
    assert client.get('/api/vendor/profile').status_code == 401
    customer = client.post('/api/auth/customer/signup', json={
        'username': 'carol', 'email': 'carol@example.com', 'mobile_number': '+1-555-0103', 'password': 'pw',
    }).get_json()
    res = client.get('/api/vendor/profile', headers=auth_header(customer['token']))
    assert res.status_code == 403
    assert res.get_json()['error'] == 'Forbidden: wrong role'

    res = client.get('/api/vendor/profile', headers=auth_header(vendor_account['token']))
    assert res.status_code == 200
    assert res.get_json()['company_email'] == 'sales@acme.test'


def test_invalid_token_is_rejected(client):
    res = client.get('/api/vendor/profile', headers=auth_header('not-a-jwt'))
    assert res.status_code == 401
    assert res.get_json()['error'] == 'Not authorized'


def test_vendor_product_views(client, vendor_account, product):
    token = vendor_account['token']
    listed = client.get('/api/vendor/products', headers=auth_header(token)).get_json()
    assert [p['id'] for p in listed] == [product['id']]

    detail = client.get(f"/api/vendor/products/{product['id']}", headers=auth_header(token)).get_json()
    assert detail['stats'] == {'purchases': 0, 'returns': 0, 'return_rate': 0}
    assert client.get('/api/vendor/products/999', headers=auth_header(token)).status_code == 404

    analytics = client.get('/api/vendor/analytics', headers=auth_header(token)).get_json()
    assert analytics['vendor_id'] == vendor_account['vendor']['id']
    assert analytics['high_return_products'] == []


def test_admin_login_and_overview(client, admin_token, product):
    res = client.post('/api/admin/login', json={'username': 'admin', 'password': 'wrong'})
    assert res.status_code == 401
    assert res.get_json()['error'] == 'Invalid credentials'

    overview = client.get('/api/admin/overview', headers=auth_header(admin_token)).get_json()
    assert overview['products'] == 1
    assert overview['vendors'] == 1


def test_admin_sets_product_status(client, admin_token, product, vendor_account):
    url = f"/api/admin/products/{product['id']}/status"
    assert client.put(url, json={}, headers=auth_header(admin_token)).status_code == 400
    assert client.put(url, json={'status': 'Flagged'},
                      headers=auth_header(vendor_account['token'])).status_code == 403

    res = client.put(url, json={'status': 'Flagged', 'reason': 'counterfeit report'},
                     headers=auth_header(admin_token))
    assert res.status_code == 200
    data = res.get_json()
    assert data['status'] == 'Flagged'
    entry = data['audit_log'][0]
    assert entry['from'] == 'Under Review'
    assert entry['performed_by'] == 'admin'
    assert entry['reason'] == 'counterfeit report'

    res = client.put(url, json={'status': 'Vaporised'}, headers=auth_header(admin_token))
    assert res.status_code == 400


def test_admin_recalculates_vendor_trust(client, admin_token, vendor_account, product):
    vendor_id = vendor_account['vendor']['id']
    res = client.post(f'/api/admin/vendors/{vendor_id}/recalculate-trust', headers=auth_header(admin_token))
    assert res.status_code == 200
    data = res.get_json()
    # no reviews and no sales: the base score
    assert data['new_trust_score'] == 50

    res = client.post('/api/admin/recompute-scores', headers=auth_header(admin_token))
    assert res.get_json()['updated'] == {'products': 1, 'vendors': 1}
