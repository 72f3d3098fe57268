from flask import Blueprint, jsonify, request

from trustlens.services import lifecycle as lifecycle_service

lifecycle = Blueprint('lifecycle', __name__)


def _body():
    return request.get_json(silent=True) or {}


@lifecycle.route('/initialize', methods=['POST'])
def initialize():
    data = _body()
    record = lifecycle_service.initialize(data.get('product_id'), data.get('seller_id'), data.get('initial_price'))
    return jsonify({'success': True, 'lifecycle': record.summary(),
                    'message': 'Product lifecycle initialized'}), 201


@lifecycle.route('/progress', methods=['POST'])
def progress():
    data = _body()
    record = lifecycle_service.progress_stage(data.get('product_id'), data.get('new_stage'),
                                              data.get('performed_by'), data.get('details'))
    return jsonify({
        'success': True,
        'current_stage': record.current_stage,
        'summary': record.summary(),
        'message': f"Product progressed to {data.get('new_stage')}",
    })


@lifecycle.route('/track-view', methods=['POST'])
def track_view():
    data = _body()
    record = lifecycle_service.track_view(data.get('product_id'), data.get('viewer_id'))
    return jsonify({'success': True, 'views': record.performance_metrics['views'],
                    'message': 'View tracked successfully'})


@lifecycle.route('/track-inquiry', methods=['POST'])
def track_inquiry():
    data = _body()
    record = lifecycle_service.track_inquiry(data.get('product_id'), data.get('inquirer_id'),
                                             data.get('inquiry_type'))
    metrics = record.performance_metrics
    return jsonify({
        'success': True,
        'inquiries': metrics['inquiries'],
        'conversion_rate': metrics['conversion_rate'],
        'message': 'Inquiry tracked successfully',
    })


@lifecycle.route('/complete-sale', methods=['POST'])
def complete_sale():
    data = _body()
    record = lifecycle_service.complete_sale(data.get('product_id'), data.get('buyer_id'), data.get('final_price'),
                                             data.get('payment_method'), data.get('shipping_method'))
    return jsonify({'success': True, 'sales_data': record.sales_data, 'summary': record.summary(),
                    'message': 'Sale completed successfully'})


@lifecycle.route('/add-review', methods=['POST'])
def add_review():
    data = _body()
    record = lifecycle_service.add_review(data.get('product_id'), data.get('reviewer_id'), data.get('rating'),
                                          data.get('review_content'))
    return jsonify({'success': True, 'review_data': record.review_data, 'message': 'Review added to lifecycle'})


@lifecycle.route('/analytics/<int:product_id>', methods=['GET'])
def analytics(product_id):
    return jsonify(lifecycle_service.analytics(product_id))


@lifecycle.route('/bulk-summary', methods=['POST'])
def bulk_summary():
    summaries = lifecycle_service.bulk_summary(_body().get('product_ids'))
    return jsonify({'success': True, 'count': len(summaries), 'summaries': summaries})


@lifecycle.route('/insights/<int:seller_id>', methods=['GET'])
def insights(seller_id):
    return jsonify(lifecycle_service.performance_insights(seller_id))


@lifecycle.route('/notifications/<int:product_id>/read', methods=['PUT'])
def mark_read(product_id):
    lifecycle_service.mark_notifications_read(product_id, _body().get('notification_ids'))
    return jsonify({'success': True, 'message': 'Notifications marked as read'})


@lifecycle.route('/timeline/<int:product_id>', methods=['GET'])
def timeline(product_id):
    return jsonify(lifecycle_service.timeline(product_id))
