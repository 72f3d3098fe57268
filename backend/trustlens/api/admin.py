from flask import Blueprint, jsonify, request, current_app

from trustlens.auth import current_identity, issue_token, role_required
from trustlens.models import Admin, Product, Vendor, get_record
from trustlens.services import marketplace

admin = Blueprint('admin', __name__)


@admin.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    account = Admin.query.filter_by(username=data.get('username')).first()
    if not account or not account.check_password(data.get('password') or ''):
        return jsonify({'error': 'Invalid credentials'}), 401
    current_app.logger.info(f"[admin] login {account.username}")
    return jsonify({'token': issue_token(account.id, 'admin')})


@admin.route('/overview', methods=['GET'])
@role_required('admin')
def overview():
    return jsonify(marketplace.overview())


@admin.route('/products/<int:product_id>/status', methods=['PUT'])
@role_required('admin')
def set_product_status(product_id):
    data = request.get_json(silent=True) or {}
    if not data.get('status'):
        return jsonify({'error': 'status is required'}), 400
    product = get_record(Product, product_id, 'Product')
    account = get_record(Admin, current_identity(), 'Admin')
    marketplace.set_product_status(product, data['status'], account.username, data.get('reason'))
    return jsonify(product.to_dict())


@admin.route('/vendors/<int:vendor_id>/recalculate-trust', methods=['POST'])
@role_required('admin')
def recalculate_vendor_trust(vendor_id):
    found = get_record(Vendor, vendor_id, 'Vendor')
    old_score = found.trust_score
    marketplace.recalculate_vendor_trust(found)
    return jsonify({'vendor': found.to_dict(), 'old_trust_score': old_score,
                    'new_trust_score': found.trust_score})


@admin.route('/recompute-scores', methods=['POST'])
@role_required('admin')
def recompute_scores():
    return jsonify({'success': True, 'updated': marketplace.recompute_all_scores()})
