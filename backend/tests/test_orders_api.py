from conftest import auth_header

ADDRESS = {'street': '9 Elm St', 'city': 'Portland', 'state': 'OR', 'country': 'USA', 'postal_code': '97201'}


def _order(client, product, customer, quantity=1):
    return client.post('/api/orders/', json={
        'customer_id': customer['id'], 'product_id': product['id'], 'quantity': quantity,
        'shipping_address': ADDRESS,
    })


def test_place_order(client, product, make_user):
    customer = make_user()
    res = _order(client, product, customer, quantity=2)
    assert res.status_code == 201
    order = res.get_json()['order']
    assert order['order_number'].startswith('TL')
    assert len(order['order_number']) == 12
    assert order['total_amount'] == 240.0
    assert order['status'] == 'Pending'
    assert order['product']['name'] == 'Studio Headphones'
    assert order['vendor']['name'] == 'Acme Audio'
    assert order['payment_method'] == 'Cash on Delivery'
    assert len(order['status_history']) == 1

    stock = client.get(f"/api/products/{product['id']}").get_json()
    assert stock['quantity'] == 3
    assert client.get(f"/api/users/{customer['id']}").get_json()['transaction_count'] == 1


def test_order_uses_customer_token(client, product):
    signup = client.post('/api/auth/customer/signup', json={
        'username': 'dave', 'email': 'dave@example.com', 'mobile_number': '+1-555-0199', 'password': 'pw',
    }).get_json()
    res = client.post('/api/orders/', json={'product_id': product['id'], 'shipping_address': ADDRESS},
                      headers=auth_header(signup['token']))
    assert res.status_code == 201
    assert res.get_json()['order']['customer_id'] == signup['user']['id']


def test_order_validation(client, product, make_user):
    customer = make_user()
    res = client.post('/api/orders/', json={'product_id': product['id']})
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Customer ID, Product ID, and shipping address are required'
    res = _order(client, product, customer, quantity=50)
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Insufficient inventory. Only 5 items available'
    assert _order(client, {'id': 999}, customer).status_code == 404


def test_cancel_restores_inventory(client, product, make_user):
    order = _order(client, product, make_user(), quantity=2).get_json()['order']
    res = client.post(f"/api/orders/{order['id']}/cancel", json={'reason': 'changed my mind'})
    assert res.status_code == 200
    cancelled = res.get_json()['order']
    assert cancelled['status'] == 'Cancelled'
    assert cancelled['status_history'][-1]['description'] == 'changed my mind'
    assert client.get(f"/api/products/{product['id']}").get_json()['quantity'] == 5

    res = client.post(f"/api/orders/{order['id']}/cancel")
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Cannot cancel order with status: Cancelled'


def test_status_updates(client, product, make_user):
    order = _order(client, product, make_user()).get_json()['order']
    url = f"/api/orders/{order['id']}/status"
    res = client.put(url, json={'status': 'Shipped', 'tracking_number': '1Z999', 'updated_by': 'Vendor'})
    assert res.status_code == 200
    shipped = res.get_json()['order']
    assert shipped['tracking_number'] == '1Z999'
    assert shipped['status_history'][-1]['updated_by'] == 'Vendor'

    res = client.put(url, json={'status': 'Lost'})
    assert res.status_code == 400
    assert res.get_json()['error'].startswith('Invalid status')

    client.put(url, json={'status': 'Returned'})
    product_after = client.get(f"/api/products/{product['id']}").get_json()
    assert product_after['quantity'] == 5
    assert product_after['total_returned'] == 1


def test_closed_orders_keep_their_status(client, product, make_user):
    order = _order(client, product, make_user()).get_json()['order']
    client.post(f"/api/orders/{order['id']}/cancel")
    res = client.put(f"/api/orders/{order['id']}/status", json={'status': 'Returned'})
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Cannot change order with status: Cancelled'
    stock = client.get(f"/api/products/{product['id']}").get_json()
    assert stock['quantity'] == 5
    assert stock['total_returned'] == 0

    delivered = _order(client, product, make_user()).get_json()['order']
    url = f"/api/orders/{delivered['id']}/status"
    assert client.put(url, json={'status': 'Delivered'}).status_code == 200
    assert client.put(url, json={'status': 'Returned'}).status_code == 200
    res = client.put(url, json={'status': 'Pending'})
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Cannot change order with status: Returned'
    stock = client.get(f"/api/products/{product['id']}").get_json()
    assert stock['quantity'] == 5
    assert stock['total_returned'] == 1


def test_cancel_through_status_update_restocks_once(client, product, make_user):
    order = _order(client, product, make_user(), quantity=2).get_json()['order']
    url = f"/api/orders/{order['id']}/status"
    assert client.put(url, json={'status': 'Cancelled'}).status_code == 200
    assert client.put(url, json={'status': 'Cancelled'}).status_code == 200
    assert client.get(f"/api/products/{product['id']}").get_json()['quantity'] == 5


def test_order_listing_and_stats(client, product, make_user):
    first, second = make_user(), make_user()
    a = _order(client, product, first).get_json()['order']
    _order(client, product, second).get_json()
    client.put(f"/api/orders/{a['id']}/status", json={'status': 'Delivered'})

    page = client.get('/api/orders/?limit=1&page=2').get_json()
    assert page['total_orders'] == 2
    assert page['total_pages'] == 2
    assert page['current_page'] == 2
    assert len(page['orders']) == 1
    assert client.get('/api/orders/?status=Delivered').get_json()['total_orders'] == 1

    stats = client.get('/api/orders/stats/overview').get_json()
    assert stats['total_orders'] == 2
    assert stats['delivered_orders'] == 1
    assert stats['total_revenue'] == 240.0
    assert stats['delivery_rate'] == 50.0

    assert len(client.get(f"/api/orders/customer/{first['id']}").get_json()) == 1
    assert len(client.get(f"/api/orders/vendor/{product['seller_id']}").get_json()) == 2
    assert client.get(f"/api/orders/{a['id']}").get_json()['status'] == 'Delivered'
    assert client.get('/api/orders/999').status_code == 404


def test_product_with_orders_cannot_be_deleted(client, product, make_user):
    _order(client, product, make_user())
    res = client.delete(f"/api/products/{product['id']}")
    assert res.status_code == 409
