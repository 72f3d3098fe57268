"""Review submission, community counters and fake-pattern detection."""
from datetime import timedelta
from statistics import fmean

from flask import current_app

from trustlens import db
from trustlens.errors import ValidationError
from trustlens.models import Order, Product, Review, User, get_record, utcnow
from trustlens.services.alerts import check_review_authenticity
from trustlens.services.marketplace import refresh_product_review_stats
from trustlens.services.review_auth import authenticate_review
from trustlens.services.scoring import linguistic
from trustlens.services.scoring.review_metrics import analyze_review_text as review_text_metrics
from trustlens.services.text_classifier import analyze_review_text
from trustlens.socketio_events import broadcast_review_status_update

MIN_CONTENT = 10
MAX_CONTENT = 2000
FLAG_THRESHOLD = 3
RECENT_WINDOW = timedelta(days=1)
EDITABLE_FIELDS = ('rating', 'content', 'status')
REVIEW_STATUSES = ('Active', 'Flagged', 'Removed')


def validate_content(content):
    content = (content or '').strip()
    if not MIN_CONTENT <= len(content) <= MAX_CONTENT:
        raise ValidationError(f'Review content must be between {MIN_CONTENT} and {MAX_CONTENT} characters')
    return content


def validate_rating(rating):
    try:
        rating = int(rating)
    except (TypeError, ValueError):
        raise ValidationError('Rating must be an integer from 1 to 5')
    if not 1 <= rating <= 5:
        raise ValidationError('Rating must be an integer from 1 to 5')
    return rating


def risk_level(score):
    if score < 40:
        return 'High'
    if score < 70:
        return 'Medium'
    return 'Low'


def reviewer_history(reviewer_id, exclude_id=None, now=None):
    now = now or utcnow()
    reviews = [r for r in Review.query.filter_by(reviewer_id=reviewer_id) if r.id != exclude_id]
    lengths = [len(r.content.split()) for r in reviews]
    return {
        'avg_review_length': fmean(lengths) if lengths else 0,
        'total_reviews': len(reviews),
        'recent_review_count': sum(1 for r in reviews if now - r.created_at < RECENT_WINDOW),
    }


def order_context(reviewer_id, product_id):
    order = Order.query.filter(
        Order.customer_id == reviewer_id,
        Order.product_id == product_id,
        ~Order.status.in_(('Cancelled', 'Returned')),
    ).first()
    if order is None:
        return {}
    return {'purchase_verified': True, 'order_trust_score': order.vendor_snapshot.get('trust_score', 0)}


def apply_analysis(review, behavior=None):
    """Score ``review.content`` and store every analysis on the record."""
    analysis = analyze_review_text(review.content)
    review.authenticity_score = max(0, min(100, analysis['authenticity_score']))
    review.is_ai_generated = analysis['is_ai_generated']
    review.linguistic_analysis = review_text_metrics(review.content)['analysis']

    fingerprint = linguistic.generate_fingerprint(review.content, behavior)
    assessment = linguistic.calculate_authenticity_score(
        fingerprint, reviewer_history(review.reviewer_id, review.id), order_context(review.reviewer_id,
                                                                                   review.product_id))
    review.fingerprint = fingerprint
    review.fingerprint_assessment = assessment

    risk_factors = []
    if analysis['is_ai_generated']:
        risk_factors.append('ai_generated_content')
    risk_factors.extend(f.lower() for f in assessment['flags'])
    review.ai_analysis = {
        'classifier_results': analysis['classifier_results'],
        'detailed_analysis': analysis['detailed_analysis'],
        'ai_indicators': analysis['ai_indicators'],
        'risk_factors': risk_factors,
    }
    return analysis


def create_review(data, source_data=None):
    """Create a review, or update the reviewer's existing review of the same product."""
    product = get_record(Product, data.get('product_id'), 'Product')
    reviewer = get_record(User, data.get('reviewer_id'), 'Reviewer')
    rating = validate_rating(data.get('rating'))
    content = validate_content(data.get('content'))

    review = Review.query.filter_by(product_id=product.id, reviewer_id=reviewer.id).first()
    created = review is None
    if created:
        review = Review(product_id=product.id, reviewer_id=reviewer.id, status='Active')
        db.session.add(review)
    review.rating = rating
    review.content = content
    # The reviewer history query must see this review's id.
    db.session.flush()
    analysis = apply_analysis(review, data.get('behavior'))
    db.session.commit()

    record = authenticate_review(review.id, source_data)
    refresh_product_review_stats(product.id)
    check_review_authenticity(review)
    current_app.logger.info(f"[review-{'create' if created else 'update'}] review={review.id} "
                            f"product={product.id} score={review.authenticity_score}")
    return review, analysis, record, created


def analyze_live(content):
    content = (content or '').strip()
    if not content:
        raise ValidationError('content is required')
    analysis = analyze_review_text(content)
    return {
        'success': True,
        'analysis': analysis,
        'metrics': review_text_metrics(content),
        'summary': {
            'authenticity_score': analysis['authenticity_score'],
            'is_ai_generated': analysis['is_ai_generated'],
            'confidence': 'High (hosted classifier)' if analysis['classifier_results'] else 'Medium (local)',
            'risk_level': risk_level(analysis['authenticity_score']),
        },
    }


def vote(review, vote_type):
    counters = review.community_validation
    counters['total_votes'] += 1
    if vote_type == 'authentic':
        counters['authentic_votes'] += 1
    else:
        counters['flagged_votes'] += 1
    review.community_validation = counters
    db.session.commit()
    return review


def update_review(review, data):
    if 'rating' in data:
        review.rating = validate_rating(data['rating'])
    if 'status' in data:
        if data['status'] not in REVIEW_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(REVIEW_STATUSES)}")
        review.status = data['status']
    if 'content' in data:
        review.content = validate_content(data['content'])
        apply_analysis(review)
    db.session.commit()
    refresh_product_review_stats(review.product_id)
    return review


def flag(review):
    counters = review.community_validation
    counters['flag_count'] += 1
    counters['report_count'] += 1
    newly_flagged = counters['flag_count'] >= FLAG_THRESHOLD and review.status != 'Flagged'
    if counters['flag_count'] >= FLAG_THRESHOLD:
        counters['status'] = 'Flagged'
        review.status = 'Flagged'
    review.community_validation = counters
    db.session.commit()
    if newly_flagged:
        refresh_product_review_stats(review.product_id)
        broadcast_review_status_update(review.id, 'Flagged', {'flag_count': counters['flag_count']})
        current_app.logger.info(f"[review-flag] review={review.id} flagged after {counters['flag_count']} reports")
    return review


def mark_helpful(review):
    counters = review.community_validation
    counters['helpful_votes'] += 1
    review.community_validation = counters
    db.session.commit()
    return review


def detect_patterns(product_id=None, review_ids=None):
    """Run fake-pattern detection over stored fingerprints."""
    query = Review.query
    if product_id is not None:
        query = query.filter_by(product_id=get_record(Product, product_id, 'Product').id)
    elif review_ids:
        query = query.filter(Review.id.in_(review_ids))
    else:
        raise ValidationError('product_id or review_ids is required')
    reviews = [r for r in query.order_by(Review.id) if r.fingerprint]
    patterns = linguistic.detect_fake_patterns([r.fingerprint for r in reviews])
    by_fingerprint = {r.fingerprint.get('fingerprint_id'): r.id for r in reviews}
    return {
        'reviews_analyzed': len(reviews),
        'review_ids_by_fingerprint': by_fingerprint,
        'patterns': patterns,
        'suspicious': any(patterns[k] for k in ('duplicate_content', 'similar_writing_styles',
                                                  'temporal_clustering')),
    }
