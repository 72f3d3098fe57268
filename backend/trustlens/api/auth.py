from flask import Blueprint, jsonify, request, current_app

from trustlens import db
from trustlens.auth import issue_token
from trustlens.models import ADDRESS_OPERATION_TYPES, User, Vendor
from trustlens.services.marketplace import create_user

auth = Blueprint('auth', __name__)

ADDRESS_FIELDS = ('operation_type', 'street', 'city', 'state', 'country', 'postal_code', 'phone')


@auth.route('/customer/signup', methods=['POST'])
def customer_signup():
    data = request.get_json(silent=True) or {}
    user = create_user(data, ip_address=request.remote_addr)
    user.record_login(request.remote_addr)
    db.session.commit()
    return jsonify({'user': user.to_dict(), 'token': issue_token(user.id, 'customer')}), 201


@auth.route('/customer/login', methods=['POST'])
def customer_login():
    data = request.get_json(silent=True) or {}
    user = User.query.filter_by(email=data.get('email')).first()
    if not user or not user.check_password(data.get('password') or ''):
        return jsonify({'error': 'Invalid email or password'}), 401
    user.record_login(request.remote_addr)
    db.session.commit()
    current_app.logger.info(f"[auth] customer login user={user.id}")
    return jsonify({'user': user.to_dict(), 'token': issue_token(user.id, 'customer')})


def _clean_addresses(addresses):
    if not isinstance(addresses, list) or not addresses:
        return None, 'At least one address is required'
    cleaned = []
    for address in addresses:
        if not isinstance(address, dict):
            return None, 'Each address must be an object'
        if address.get('operation_type') not in ADDRESS_OPERATION_TYPES:
            return None, f"operation_type must be one of: {', '.join(ADDRESS_OPERATION_TYPES)}"
        cleaned.append({field: address.get(field) for field in ADDRESS_FIELDS})
    return cleaned, None


@auth.route('/vendor/signup', methods=['POST'])
def vendor_signup():
    data = request.get_json(silent=True) or {}
    if not all([data.get('name'), data.get('company_email'), data.get('password')]):
        return jsonify({'error': 'Name, company email and password are required'}), 400
    if Vendor.query.filter_by(company_email=data['company_email']).first():
        return jsonify({'error': 'Vendor with this email already exists'}), 400
    if Vendor.query.filter_by(name=data['name']).first():
        return jsonify({'error': 'Vendor with this name already exists'}), 400
    addresses, error = _clean_addresses(data.get('addresses'))
    if error:
        return jsonify({'error': error}), 400

    new_vendor = Vendor(name=data['name'], company_email=data['company_email'], rating=0, trust_score=50,
                        total_sales=0, total_returns=0, is_active=True)
    new_vendor.contact_person = data.get('contact_person') or {}
    new_vendor.addresses = addresses
    new_vendor.set_password(data['password'])
    db.session.add(new_vendor)
    db.session.commit()
    current_app.logger.info(f"[auth] vendor signup vendor={new_vendor.id}")
    return jsonify({'vendor': new_vendor.to_dict(), 'token': issue_token(new_vendor.id, 'vendor')}), 201


@auth.route('/vendor/login', methods=['POST'])
def vendor_login():
    data = request.get_json(silent=True) or {}
    found = Vendor.query.filter_by(company_email=data.get('company_email')).first()
    if not found or not found.check_password(data.get('password') or ''):
        return jsonify({'error': 'Invalid email or password'}), 401
    return jsonify({'vendor': found.to_dict(), 'token': issue_token(found.id, 'vendor')})
