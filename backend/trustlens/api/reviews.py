from flask import Blueprint, jsonify, request

from trustlens.models import Product, Review, get_record, isoformat, utcnow
from trustlens.services import reviews as review_service

reviews = Blueprint('reviews', __name__)


def _source_data():
    agent = request.headers.get('User-Agent', 'unknown')
    return {
        'ip_address': request.remote_addr,
        'device_fingerprint': agent,
        'browser_info': agent,
        'session_data': {'timestamp': isoformat(utcnow())},
    }


@reviews.route('/', methods=['POST'])
def create_review():
    data = request.get_json(silent=True) or {}
    review, analysis, record, created = review_service.create_review(data, _source_data())
    body = review.to_dict()
    body['ai_analysis_results'] = analysis
    body['enhanced_authentication'] = {
        'authentication_id': record.id,
        'overall_score': record.overall_authentication_score,
        'status': record.final_decision.get('status'),
    }
    return jsonify(body), 201 if created else 200


@reviews.route('/', methods=['GET'])
def list_reviews():
    found = Review.query.order_by(Review.created_at.desc(), Review.id.desc())
    result = []
    for review in found:
        data = review.to_dict()
        data['product'] = {'id': review.product.id, 'name': review.product.name, 'price': review.product.price}
        result.append(data)
    return jsonify(result)


@reviews.route('/product/<int:product_id>', methods=['GET'])
def product_reviews(product_id):
    product = get_record(Product, product_id, 'Product')
    return jsonify([r.to_dict() for r in product.reviews.order_by(Review.created_at.desc(), Review.id.desc())])


@reviews.route('/analyze-live', methods=['POST'])
def analyze_live():
    data = request.get_json(silent=True) or {}
    return jsonify(review_service.analyze_live(data.get('content')))


@reviews.route('/<int:review_id>/vote', methods=['POST'])
def vote(review_id):
    review = get_record(Review, review_id, 'Review')
    data = request.get_json(silent=True) or {}
    return jsonify(review_service.vote(review, data.get('vote_type')).to_dict())


@reviews.route('/<int:review_id>', methods=['PUT'])
def update_review(review_id):
    review = get_record(Review, review_id, 'Review')
    data = request.get_json(silent=True) or {}
    return jsonify(review_service.update_review(review, data).to_dict())


@reviews.route('/<int:review_id>/flag', methods=['POST'])
def flag(review_id):
    review = get_record(Review, review_id, 'Review')
    data = request.get_json(silent=True) or {}
    review_service.flag(review)
    counters = review.community_validation
    return jsonify({
        'success': True,
        'message': f"Review flagged. Total flags: {counters['flag_count']}",
        'community_validation': counters,
        'status': review.status,
        'reason': data.get('reason') or 'No reason provided',
    })


@reviews.route('/<int:review_id>/helpful', methods=['POST'])
def helpful(review_id):
    review = review_service.mark_helpful(get_record(Review, review_id, 'Review'))
    counters = review.community_validation
    return jsonify({
        'success': True,
        'message': f"Helpful vote added. Total: {counters['helpful_votes']}",
        'community_validation': counters,
    })


@reviews.route('/patterns', methods=['POST'])
def patterns():
    data = request.get_json(silent=True) or {}
    return jsonify(review_service.detect_patterns(data.get('product_id'), data.get('review_ids')))
