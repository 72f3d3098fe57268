from flask import Blueprint, jsonify, request

from trustlens.models import ReviewAuthentication, get_record
from trustlens.services import review_auth

enhanced_reviews = Blueprint('enhanced_reviews', __name__)


def _record(auth_id):
    return get_record(ReviewAuthentication, auth_id, 'Authentication record')


@enhanced_reviews.route('/authenticate/<int:review_id>', methods=['POST'])
def authenticate(review_id):
    source_data = request.get_json(silent=True) or {}
    source_data.setdefault('ip_address', request.remote_addr)
    record = review_auth.authenticate_review(review_id, source_data)
    return jsonify({
        'success': True,
        'authentication_id': record.id,
        'authenticity_score': record.overall_authentication_score,
        'status': record.final_decision.get('status'),
        'workflow_stage': record.verification_workflow.get('current_stage'),
        'fraud_indicators': len(record.fraud_indicators),
        'message': 'Enhanced authentication completed',
    })


@enhanced_reviews.route('/details/<int:review_id>', methods=['GET'])
def details(review_id):
    record = review_auth.record_for_review(review_id)
    if record is None:
        return jsonify({'error': 'Authentication record not found'}), 404
    data = record.to_dict()
    data['review'] = record.review.to_dict() if record.review else None
    return jsonify(data)


@enhanced_reviews.route('/summary/<int:review_id>', methods=['GET'])
def summary(review_id):
    record = review_auth.record_for_review(review_id)
    if record is None:
        return jsonify({'error': 'Authentication summary not found'}), 404
    return jsonify(record.summary())


@enhanced_reviews.route('/workflow/<int:auth_id>/progress', methods=['POST'])
def progress(auth_id):
    record = _record(auth_id)
    data = request.get_json(silent=True) or {}
    review_auth.progress(record, data.get('action'), data.get('performed_by'), data.get('notes'))
    return jsonify({
        'success': True,
        'current_stage': record.verification_workflow.get('current_stage'),
        'message': 'Workflow progressed successfully',
    })


@enhanced_reviews.route('/pending-review', methods=['GET'])
def pending():
    result = []
    for record in review_auth.pending_review():
        data = record.to_dict()
        data['review'] = record.review.to_dict() if record.review else None
        result.append(data)
    return jsonify(result)


@enhanced_reviews.route('/bulk-authenticate', methods=['POST'])
def bulk_authenticate():
    data = request.get_json(silent=True) or {}
    result = review_auth.bulk_authenticate(data.get('review_ids'))
    result['success'] = True
    return jsonify(result)


@enhanced_reviews.route('/stats/overview', methods=['GET'])
def stats():
    return jsonify(review_auth.stats_overview())


@enhanced_reviews.route('/decision/<int:auth_id>', methods=['PUT'])
def decision(auth_id):
    record = _record(auth_id)
    data = request.get_json(silent=True) or {}
    review_auth.record_decision(record, data.get('status'), data.get('confidence'), data.get('reasoning'),
                                data.get('decided_by'))
    return jsonify({'success': True, 'decision': record.final_decision,
                    'message': 'Final decision updated successfully'})


@enhanced_reviews.route('/stats/daily', methods=['GET'])
def daily():
    return jsonify(review_auth.daily_stats(request.args.get('days', 7)))


@enhanced_reviews.route('/analytics/overview', methods=['GET'])
def analytics():
    return jsonify(review_auth.analytics_overview())
