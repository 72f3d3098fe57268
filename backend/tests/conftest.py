import os
import sys
import pytest

# Ensure the backend root (containing the `trustlens` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from trustlens import create_app, db, socketio

REVIEW_TEXT = ('I bought these headphones for my commute and the noise cancelling works well on the train. '
               'Battery lasted about 3 days of normal use. The case feels a bit cheap compared to my old pair.')


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    BCRYPT_LOG_ROUNDS = 4
    # Never reach the hosted classifier from the test suite
    TEXT_CLASSIFIER_ENABLED = False
    HF_API_TOKEN = ''
    COMMUNITY_MIN_VALIDATORS = 5
    ADMIN_USERNAME = 'admin'
    ADMIN_PASSWORD = '12345'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import trustlens.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


def auth_header(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture()
def make_user(client):
    """Create customers through the API; each call gets unique identifiers."""
    counter = {'n': 0}

    def _make(**fields):
        counter['n'] += 1
        n = counter['n']
        payload = {
            'username': f'user{n}',
            'email': f'user{n}@example.com',
            'mobile_number': f'+1-555-{n:04d}',
            'password': 'password',
            'ip_address': f'10.0.0.{n}',
        }
        payload.update(fields)
        res = client.post('/api/users/', json=payload)
        assert res.status_code == 201, res.get_json()
        return res.get_json()['user']
    return _make


@pytest.fixture()
def vendor_account(client):
    res = client.post('/api/auth/vendor/signup', json={
        'name': 'Acme Audio',
        'company_email': 'sales@acme.test',
        'password': 'vendorpass',
        'contact_person': {'name': 'Dana Lee', 'email': 'dana@acme.test'},
        'addresses': [{'operation_type': 'warehouse', 'street': '1 Dock Rd', 'city': 'Oakland',
                       'state': 'CA', 'country': 'USA', 'postal_code': '94607', 'phone': '+1-555-0000'}],
    })
    assert res.status_code == 201, res.get_json()
    return res.get_json()


@pytest.fixture()
def product(client, vendor_account):
    res = client.post('/api/products/', data={
        'name': 'Studio Headphones',
        'description': 'Closed-back headphones',
        'price': '120.00',
        'category': 'Electronics',
        'quantity': '5',
    }, headers=auth_header(vendor_account['token']), content_type='multipart/form-data')
    assert res.status_code == 201, res.get_json()
    return res.get_json()['product']


@pytest.fixture()
def review(client, product, make_user):
    reviewer = make_user()
    res = client.post('/api/reviews/', json={
        'product_id': product['id'],
        'reviewer_id': reviewer['id'],
        'rating': 4,
        'content': REVIEW_TEXT,
    })
    assert res.status_code == 201, res.get_json()
    return res.get_json()


@pytest.fixture()
def admin_token(flask_app, client):
    from trustlens.seed import ensure_admin
    ensure_admin()
    res = client.post('/api/admin/login', json={'username': 'admin', 'password': '12345'})
    assert res.status_code == 200
    return res.get_json()['token']
