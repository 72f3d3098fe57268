from flask import current_app

from trustlens import db
from trustlens.models import Admin, Product, User, Vendor
from trustlens.services.scoring.trust import calculate_trust_score

DEMO_PASSWORD = 'password'

DEFAULT_VENDORS = [
    {
        'name': 'TechMaster Pro',
        'company_email': 'admin@techmasterpro.com',
        'contact_person': {'name': 'John Smith', 'email': 'john@techmasterpro.com', 'phone': '+1-555-0101'},
        'address': ('123 Tech Street', 'San Francisco', 'CA', '94105', '+1-555-0101'),
        'trust_score': 85,
    },
    {
        'name': 'Fashion Forward Ltd',
        'company_email': 'contact@fashionforward.com',
        'contact_person': {'name': 'Sarah Johnson', 'email': 'sarah@fashionforward.com', 'phone': '+1-555-0102'},
        'address': ('456 Fashion Ave', 'New York', 'NY', '10001', '+1-555-0102'),
        'trust_score': 92,
    },
    {
        'name': 'Luxury Goods Co',
        'company_email': 'sales@luxurygoods.com',
        'contact_person': {'name': 'Michael Chen', 'email': 'michael@luxurygoods.com', 'phone': '+1-555-0103'},
        'address': ('789 Luxury Lane', 'Beverly Hills', 'CA', '90210', '+1-555-0103'),
        'trust_score': 78,
    },
    {
        'name': 'Global Marketplace Inc',
        'company_email': 'info@globalmarket.com',
        'contact_person': {'name': 'Emma Davis', 'email': 'emma@globalmarket.com', 'phone': '+1-555-0104'},
        'address': ('321 Market Plaza', 'Chicago', 'IL', '60601', '+1-555-0104'),
        'trust_score': 67,
    },
]

DEMO_PRODUCTS = [
    ('Wireless Noise-Cancelling Headphones', 'Electronics', 199.99),
    ('Leather Crossbody Bag', 'Fashion', 89.50),
    ('Swiss Automatic Watch', 'Accessories', 1250.00),
    ('Stainless Steel Water Bottle', 'Home', 24.95),
]

DEMO_USERS = [
    # username, account age (days), transactions, risk level
    ('alice', 120, 25, 'Low'),
    ('bob', 45, 8, 'Medium'),
    ('carol', 2, 14, 'Medium'),
]


def ensure_admin():
    """Create the configured admin account; returns False when it already exists."""
    username = current_app.config['ADMIN_USERNAME']
    if Admin.query.filter_by(username=username).first():
        return False
    admin = Admin(username=username)
    admin.set_password(current_app.config['ADMIN_PASSWORD'])
    db.session.add(admin)
    db.session.commit()
    current_app.logger.info(f"[seed] admin '{username}' created")
    return True


def _vendor(data):
    street, city, state, postal_code, phone = data['address']
    vendor = Vendor(name=data['name'], company_email=data['company_email'], trust_score=data['trust_score'],
                    rating=0, total_sales=0, total_returns=0, is_active=True)
    vendor.contact_person = data['contact_person']
    vendor.addresses = [{
        'operation_type': 'warehouse',
        'street': street,
        'city': city,
        'state': state,
        'country': 'USA',
        'postal_code': postal_code,
        'phone': phone,
    }]
    vendor.set_password(DEMO_PASSWORD)
    return vendor


def seed_demo_data():
    ensure_admin()
    vendors = [_vendor(v) for v in DEFAULT_VENDORS]
    db.session.add_all(vendors)
    db.session.flush()

    for index, (name, category, price) in enumerate(DEMO_PRODUCTS):
        product = Product(name=name, category=category, price=price, quantity=10,
                          description=f'{name} sold by {vendors[index].name}',
                          seller_id=vendors[index].id, status='Listed')
        product.images = []
        product.meta = {}
        db.session.add(product)

    for number, (username, age, transactions, risk) in enumerate(DEMO_USERS, start=1):
        user = User(username=username, email=f'{username}@example.com', mobile_number=f'+1-555-01{number:02d}',
                    account_age=age, transaction_count=transactions, risk_level=risk,
                    trust_score=calculate_trust_score(age, transactions, None, risk))
        user.set_password(DEMO_PASSWORD)
        user.update_behavior()
        db.session.add(user)
    db.session.commit()

    counts = {
        'vendors': Vendor.query.count(),
        'products': Product.query.count(),
        'users': User.query.count(),
        'admins': Admin.query.count(),
    }
    current_app.logger.info(f"[seed] demo data: {counts}")
    return counts
