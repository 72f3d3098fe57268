from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt, verify_jwt_in_request

from trustlens.auth import current_identity
from trustlens.models import Order, User, Vendor, get_record
from trustlens.services import marketplace

orders = Blueprint('orders', __name__)


@orders.route('/', methods=['POST'])
def place_order():
    verify_jwt_in_request(optional=True)
    customer_id = current_identity() if get_jwt().get('role') == 'customer' else None
    data = request.get_json(silent=True) or {}
    order = marketplace.place_order(data, customer_id=customer_id, ip_address=request.remote_addr)
    return jsonify({'success': True, 'message': 'Order placed successfully', 'order': order.to_dict()}), 201


@orders.route('/', methods=['GET'])
def list_orders():
    args = request.args
    return jsonify(marketplace.list_orders(args.get('status'), args.get('page', 1), args.get('limit', 10)))


@orders.route('/stats/overview', methods=['GET'])
def stats():
    return jsonify(marketplace.order_stats())


@orders.route('/customer/<int:customer_id>', methods=['GET'])
def customer_orders(customer_id):
    customer = get_record(User, customer_id, 'Customer')
    found = Order.query.filter_by(customer_id=customer.id).order_by(Order.created_at.desc(), Order.id.desc())
    return jsonify([o.to_dict() for o in found])


@orders.route('/vendor/<int:vendor_id>', methods=['GET'])
def vendor_orders(vendor_id):
    seller = get_record(Vendor, vendor_id, 'Vendor')
    found = Order.query.filter_by(vendor_id=seller.id).order_by(Order.created_at.desc(), Order.id.desc())
    return jsonify([o.to_dict() for o in found])


@orders.route('/<int:order_id>', methods=['GET'])
def get_order(order_id):
    return jsonify(get_record(Order, order_id, 'Order').to_dict())


@orders.route('/<int:order_id>/status', methods=['PUT'])
def update_status(order_id):
    order = get_record(Order, order_id, 'Order')
    data = request.get_json(silent=True) or {}
    marketplace.update_order_status(order, data.get('status'), data.get('description'),
                                    data.get('updated_by') or 'Customer', data.get('tracking_number'))
    return jsonify({'success': True, 'message': 'Order status updated', 'order': order.to_dict()})


@orders.route('/<int:order_id>/cancel', methods=['POST'])
def cancel(order_id):
    order = get_record(Order, order_id, 'Order')
    data = request.get_json(silent=True) or {}
    marketplace.cancel_order(order, data.get('reason'))
    return jsonify({'success': True, 'message': 'Order cancelled successfully', 'order': order.to_dict()})
