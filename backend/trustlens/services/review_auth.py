"""Multi-step review authentication.

An authentication record runs the AI scan, linguistic and behavioural steps
against a stored review, adds the reviewer's credibility factors, scores the
result and routes it into the verification workflow. Moderators then move the
workflow along or record a final decision over HTTP.
"""
from datetime import datetime, time, timedelta

from flask import current_app

from trustlens import db
from trustlens.errors import TrustLensError, ValidationError
from trustlens.models import (
    DECISION_STATUSES, Order, Review, ReviewAuthentication, PRIORITY_ORDER, get_record, isoformat, utcnow,
)
from trustlens.services.scoring import review_auth as scoring
from trustlens.services.scoring.behavior import analyze_typing_behavior
from trustlens.services.text_classifier import analyze_review_text
from trustlens.socketio_events import broadcast_bulk_operation_complete, broadcast_review_status_update

PENDING_STAGES = ('community_review', 'expert_validation')
PENDING_DECISIONS = ('suspicious', 'requires_investigation')


def initial_ai_scan(record, review):
    analysis = analyze_review_text(review.content)
    if not analysis['classifier_results']:
        record.add_step({
            'step': 'initial_ai_scan',
            'score': scoring.AI_SCAN_FALLBACK_SCORE,
            'status': 'requires_manual',
            'details': {
                'is_ai_generated': analysis['is_ai_generated'],
                'confidence': scoring.AI_SCAN_FALLBACK_SCORE,
                'risk_factors': ['Hosted classifier unavailable - using local analysis only'],
            },
            'ai_analysis': {
                'model_used': 'Local NLP Fallback',
                'inference_score': scoring.AI_SCAN_FALLBACK_SCORE,
                'local_analysis_results': analysis['local_analysis'],
            },
        })
    else:
        config = current_app.config
        record.add_step({
            'step': 'initial_ai_scan',
            'score': analysis['authenticity_score'],
            'status': 'passed' if analysis['authenticity_score'] > scoring.AI_SCAN_PASS else 'failed',
            'details': {
                'is_ai_generated': analysis['is_ai_generated'],
                'confidence': analysis['authenticity_score'],
                'risk_factors': analysis['detailed_analysis'],
            },
            'ai_analysis': {
                'model_used': 'Hosted classifier pipeline',
                'model_version': f"{config['SENTIMENT_MODEL']} + {config['TOXICITY_MODEL']}",
                'inference_score': analysis['authenticity_score'],
                'classifier_results': analysis['classifier_results'],
                'local_analysis_results': analysis['local_analysis'],
            },
        })
    if analysis['is_ai_generated']:
        record.add_fraud_indicator('ai_generated_content', 'high', analysis['authenticity_score'],
                                   'Content appears to be AI-generated')


def linguistic_step(record, review):
    content = review.content
    analysis = scoring.analyze_linguistic_patterns(content)
    fingerprint = {
        'lexical_diversity': analysis['lexical_diversity'],
        'word_count': analysis['word_count'],
        'avg_sentence_length': analysis['avg_words_per_sentence'],
        'sentence_variance': analysis['sentence_variance'],
        'unique_word_ratio': analysis['unique_words'] / max(analysis['word_count'], 1),
        'pos_distribution': scoring.pos_distribution(content),
        'tfidf_top_terms': scoring.tfidf_terms(content),
        'readability_score': scoring.readability_score(content),
        'emotional_words': scoring.emotional_words(content),
    }
    record.add_step({
        'step': 'linguistic_analysis',
        'score': analysis['overall_score'],
        'status': 'passed' if analysis['overall_score'] > scoring.LINGUISTIC_PASS else 'failed',
        'details': analysis,
        'linguistic_fingerprint': fingerprint,
    })
    record.linguistic_analysis = fingerprint
    for pattern in analysis['suspicious_patterns']:
        record.add_fraud_indicator(f"linguistic_{pattern['type']}", pattern['severity'],
                                   pattern['confidence'], pattern['description'])


def behavioral_step(record, review):
    user = review.reviewer
    score = scoring.BEHAVIOR_BASE_SCORE
    if user.typing_cadence:
        analysis = analyze_typing_behavior(user.typing_cadence)
        score = scoring.behavior_step_score(analysis['classification'])
        if analysis['classification'] == 'Bot':
            record.add_fraud_indicator('bot_behavior', 'critical', analysis['confidence'],
                                       'User exhibits bot-like behavioral patterns')
    record.add_step({
        'step': 'behavioral_check',
        'score': score,
        'status': 'passed' if score > scoring.BEHAVIOR_PASS else 'failed',
        'details': {
            'user_trust_score': user.trust_score,
            'account_age': user.account_age,
            'risk_level': user.risk_level,
        },
    })


def purchase_verification(review, user_reviews, now):
    """A delivered or in-flight order is proof; otherwise fall back to account heuristics."""
    order = Order.query.filter(
        Order.customer_id == review.reviewer_id,
        Order.product_id == review.product_id,
        ~Order.status.in_(('Cancelled', 'Returned')),
    ).first()
    if order is not None:
        return {
            'verified': True,
            'confidence': 95,
            'method': 'order_record',
            'details': {'order_number': order.order_number},
        }
    user = review.reviewer
    age_days = max(user.account_age or 0, (now - user.created_at).total_seconds() / 86400)
    last_day = sum(1 for r in user_reviews if now - r.created_at < timedelta(days=1))
    return scoring.purchase_verification(age_days, len(user_reviews), last_day)


def credibility_step(record, review, now):
    user_reviews = Review.query.filter_by(reviewer_id=review.reviewer_id).all()
    ratings = [r.rating for r in user_reviews]
    verification = purchase_verification(review, user_reviews, now)
    temporal = scoring.temporal_patterns(review.created_at, [r.created_at for r in user_reviews])
    record.credibility_factors = {
        'purchase_verification': {
            'verified': verification['verified'],
            'verification_method': verification['method'],
            'verification_date': isoformat(now),
            'confidence': verification['confidence'],
        },
        'reviewer_history': {
            'total_reviews': len(user_reviews),
            'average_rating': sum(ratings) / len(ratings) if ratings else 0,
            'review_consistency': scoring.review_consistency(ratings),
        },
        'temporal_analysis': {
            'time_to_review': temporal['time_to_review'],
            'reviewing_pattern': temporal['pattern'],
            'seasonality_score': temporal['seasonality_score'],
            'suspicious_timing_flags': temporal['suspicious_flags'],
        },
        'content_quality': {
            'detail_level': scoring.detail_level(review.content),
            'helpfulness_score': scoring.helpfulness_score(review.content, ratings),
            'originality_score': scoring.originality(review.content),
        },
    }


def route_workflow(record, now):
    decision = scoring.workflow_decision(record.overall_authentication_score, record.critical_indicator_count)
    workflow = record.verification_workflow
    workflow['current_stage'] = decision['stage']
    if decision['priority'] and PRIORITY_ORDER[workflow['priority_level']] < PRIORITY_ORDER[decision['priority']]:
        workflow['priority_level'] = decision['priority']
    record.verification_workflow = workflow
    record.final_decision = {
        'status': decision['status'],
        'confidence': decision['confidence'],
        'reasoning': decision['reasoning'],
        'decided_by': 'automated_system',
        'decided_at': isoformat(now),
    }


def authenticate_review(review_id, source_data=None):
    """Run every automated step for a review and persist the result.

    Re-authenticating a review replaces its previous record.
    """
    review = get_record(Review, review_id, 'Review')
    source_data = source_data or {}
    existing = ReviewAuthentication.query.filter_by(review_id=review.id).first()
    if existing is not None:
        db.session.delete(existing)
        db.session.flush()

    now = utcnow()
    record = ReviewAuthentication(review_id=review.id)
    record.source_verification = {
        'ip_address': source_data.get('ip_address') or 'unknown',
        'device_fingerprint': source_data.get('device_fingerprint') or 'unknown',
        'geolocation': source_data.get('geolocation') or {},
        'browser_info': source_data.get('browser_info') or 'unknown',
        'session_data': source_data.get('session_data') or {},
    }
    initial_ai_scan(record, review)
    linguistic_step(record, review)
    behavioral_step(record, review)
    credibility_step(record, review, now)
    record.calculate_authentication_score()
    route_workflow(record, now)
    db.session.add(record)
    db.session.commit()
    current_app.logger.info(f"[review-auth] review={review.id} score={record.overall_authentication_score} "
                            f"decision={record.final_decision['status']} "
                            f"stage={record.verification_workflow['current_stage']}")
    return record


def record_for_review(review_id):
    return ReviewAuthentication.query.filter_by(review_id=review_id).first()


def progress(record, action, performed_by, notes=''):
    if not action:
        raise ValidationError('action is required')
    record.progress_workflow(action, performed_by or 'moderator', notes or '')
    db.session.commit()
    return record


def pending_review():
    return [r for r in ReviewAuthentication.query.order_by(ReviewAuthentication.created_at.desc()).all()
            if r.verification_workflow.get('current_stage') in PENDING_STAGES
            and r.final_decision.get('status') in PENDING_DECISIONS]


def bulk_authenticate(review_ids):
    if not isinstance(review_ids, list) or not review_ids:
        raise ValidationError('Invalid review IDs array')
    results = []
    for review_id in review_ids:
        try:
            record = authenticate_review(review_id)
        except TrustLensError as exc:
            db.session.rollback()
            results.append({'review_id': review_id, 'success': False, 'error': exc.message})
            continue
        results.append({
            'review_id': review_id,
            'success': True,
            'authenticity_score': record.overall_authentication_score,
            'status': record.final_decision.get('status'),
        })
    successful = sum(1 for r in results if r['success'])
    summary = {
        'processed': len(review_ids),
        'successful': successful,
        'failed': len(review_ids) - successful,
    }
    broadcast_bulk_operation_complete('bulk_authenticate', summary)
    summary['results'] = results
    return summary


def record_decision(record, status, confidence=None, reasoning=None, decided_by=None):
    if status not in DECISION_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(DECISION_STATUSES)}")
    record.final_decision = {
        'status': status,
        'confidence': confidence,
        'reasoning': reasoning if isinstance(reasoning, list) else [reasoning] if reasoning else [],
        'decided_by': decided_by or 'moderator',
        'decided_at': isoformat(utcnow()),
        'appealable': status != 'authentic',
    }
    workflow = record.verification_workflow
    workflow['current_stage'] = 'completed'
    record.verification_workflow = workflow
    db.session.commit()
    broadcast_review_status_update(record.review_id, status, {'decided_by': decided_by or 'moderator'})
    return record


def _group(records, key):
    groups = {}
    for record in records:
        groups.setdefault(key(record), []).append(record)
    return groups


def _mean_score(records):
    return round(sum(r.overall_authentication_score for r in records) / len(records), 2) if records else 0


def stats_overview():
    records = ReviewAuthentication.query.all()
    by_status = _group(records, lambda r: r.final_decision.get('status'))
    by_stage = _group(records, lambda r: r.verification_workflow.get('current_stage'))
    fraud = {}
    for record in records:
        for indicator in record.fraud_indicators:
            fraud[indicator['severity']] = fraud.get(indicator['severity'], 0) + 1
    return {
        'status_stats': [{'status': s, 'count': len(items), 'avg_score': _mean_score(items)}
                         for s, items in by_status.items()],
        'workflow_stats': [{'stage': s, 'count': len(items)} for s, items in by_stage.items()],
        'fraud_stats': [{'severity': s, 'count': c} for s, c in fraud.items()],
    }


def daily_stats(days=7, today=None):
    try:
        days = int(days)
    except (TypeError, ValueError):
        raise ValidationError('days must be an integer')
    if days < 1:
        raise ValidationError('days must be at least 1')
    today = (today or utcnow()).date()
    start = today - timedelta(days=days - 1)
    records = ReviewAuthentication.query.filter(
        ReviewAuthentication.created_at >= datetime.combine(start, time.min)).all()
    by_day = _group(records, lambda r: r.created_at.date())
    result = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        items = by_day.get(day, [])
        statuses = [r.final_decision.get('status') for r in items]
        result.append({
            'date': day.isoformat(),
            'reviews': len(items),
            'avg_score': round(_mean_score(items)),
            'authentic': statuses.count('authentic'),
            'suspicious': statuses.count('suspicious'),
            'fake': statuses.count('fake'),
        })
    return result


def analytics_overview():
    now = utcnow()
    records = ReviewAuthentication.query.all()
    indicators = {}
    for record in records:
        for indicator in record.fraud_indicators:
            entry = indicators.setdefault(indicator['indicator'], {'indicator': indicator['indicator'],
                                                                   'count': 0, 'severities': {}})
            entry['count'] += 1
            entry['severities'][indicator['severity']] = entry['severities'].get(indicator['severity'], 0) + 1
    efficiency = []
    for stage, items in _group(records, lambda r: r.verification_workflow.get('current_stage')).items():
        durations = []
        for record in items:
            decided = record.final_decision.get('decided_at')
            end = datetime.fromisoformat(decided) if decided else now
            durations.append((end - record.created_at).total_seconds())
        efficiency.append({'stage': stage, 'count': len(items),
                           'avg_processing_seconds': round(sum(durations) / len(durations), 2)})
    return {
        'total_reviews': len(records),
        'status_breakdown': stats_overview()['status_stats'],
        'fraud_indicator_stats': list(indicators.values()),
        'workflow_efficiency': efficiency,
        'last_updated': isoformat(now),
    }
