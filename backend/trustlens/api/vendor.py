from flask import Blueprint, jsonify

from trustlens.auth import current_identity, role_required
from trustlens.models import Product, Vendor, get_record
from trustlens.services.marketplace import seller_analytics, vendor_product_detail

vendor = Blueprint('vendor', __name__)


def _current_vendor():
    return get_record(Vendor, current_identity(), 'Vendor')


@vendor.route('/profile', methods=['GET'])
@role_required('vendor')
def profile():
    return jsonify(_current_vendor().to_dict())


@vendor.route('/products', methods=['GET'])
@role_required('vendor')
def list_products():
    current = _current_vendor()
    return jsonify([p.to_dict(include_seller=False) for p in current.products.order_by(Product.created_at.desc())])


@vendor.route('/products/<int:product_id>', methods=['GET'])
@role_required('vendor')
def product_detail(product_id):
    detail = vendor_product_detail(_current_vendor(), product_id)
    if detail is None:
        return jsonify({'error': 'Product not found'}), 404
    return jsonify(detail)


@vendor.route('/analytics', methods=['GET'])
@role_required('vendor')
def analytics():
    return jsonify(seller_analytics(_current_vendor()))
