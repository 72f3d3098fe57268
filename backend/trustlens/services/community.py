"""Community validation requests, voting and validator statistics."""
from datetime import timedelta

from flask import current_app

from trustlens import db
from trustlens.errors import ValidationError
from trustlens.models import (
    CommunityValidation, DIFFICULTY_THRESHOLDS, PRIORITY_ORDER, Product, Review, User,
    VALIDATION_TARGET_MODELS, VALIDATION_TYPES, get_record, isoformat, utcnow,
)
from trustlens.services.scoring.behavior import analyze_typing_behavior
from trustlens.services.scoring.consensus import VALID_VOTES
from trustlens.services.text_classifier import analyze_review_text

MAX_REASONING_LENGTH = 500
AUTO_REVIEW_BELOW = 60
AUTO_USER_BELOW = 40
AUTO_REVIEW_LIMIT = 5
AUTO_USER_LIMIT = 3

QUESTIONS = {
    ('review', 'authenticity'): 'Is this review written by a real human customer?',
    ('review', 'quality_assessment'): 'Is this review helpful and informative?',
    ('user', 'trust_verification'): 'Is this user account operated by a real human?',
    ('user', 'fraud_detection'): 'Does this user show signs of fraudulent behavior?',
    ('product', 'authenticity'): 'Is this product listing legitimate and accurate?',
    ('image', 'authenticity'): 'Is this image authentic and unmanipulated?',
}
MODELS = {'User': User, 'Review': Review, 'Product': Product}


def validation_question(target_type, validation_type):
    return QUESTIONS.get((target_type, validation_type),
                         f'Please assess the {validation_type} of this {target_type}')


def ai_assessment(target_type, target, validation_type):
    """Machine opinion stored next to the community vote for comparison."""
    if target_type == 'review' and validation_type == 'authenticity':
        analysis = analyze_review_text(target.content)
        return {
            'prediction': 'fake' if analysis['is_ai_generated'] else 'authentic',
            'confidence': analysis['authenticity_score'],
            'reasoning': list(analysis['detailed_analysis'].values()),
        }
    if target_type == 'user' and validation_type == 'trust_verification' and target.typing_cadence:
        analysis = analyze_typing_behavior(target.typing_cadence)
        details = analysis['analysis'] if isinstance(analysis['analysis'], dict) else {}
        return {
            'prediction': 'trustworthy' if analysis['classification'] == 'Human' else 'untrustworthy',
            'confidence': analysis['confidence'],
            'reasoning': details.get('risk_factors', []),
        }
    return {
        'prediction': 'suspicious',
        'confidence': 50,
        'reasoning': ['Insufficient data for AI assessment'],
    }


def create_validation(target_type, target_id, validation_type, options=None):
    options = options or {}
    if target_type not in VALIDATION_TARGET_MODELS:
        raise ValidationError(f"target_type must be one of: {', '.join(VALIDATION_TARGET_MODELS)}")
    if validation_type not in VALIDATION_TYPES:
        raise ValidationError(f"validation_type must be one of: {', '.join(VALIDATION_TYPES)}")
    target_model = VALIDATION_TARGET_MODELS[target_type]
    target = get_record(MODELS[target_model], target_id, target_model)

    config = current_app.config
    try:
        hours = float(options.get('duration_hours') or config['COMMUNITY_DURATION_HOURS'])
        requested_minimum = int(options.get('minimum_validators') or config['COMMUNITY_MIN_VALIDATORS'])
        reward_pool = float(options.get('reward_pool') or config['COMMUNITY_REWARD_POOL'])
    except (TypeError, ValueError):
        raise ValidationError('duration_hours, minimum_validators and reward_pool must be numbers')
    priority = options.get('priority') or 'medium'
    difficulty = options.get('difficulty') or 'medium'
    if priority not in PRIORITY_ORDER:
        raise ValidationError(f"priority must be one of: {', '.join(PRIORITY_ORDER)}")
    if difficulty not in DIFFICULTY_THRESHOLDS:
        raise ValidationError(f"difficulty must be one of: {', '.join(DIFFICULTY_THRESHOLDS)}")

    validation = CommunityValidation(
        target_type=target_type,
        target_id=target.id,
        target_model=target_model,
        validation_type=validation_type,
        question=validation_question(target_type, validation_type),
        status='active',
        # Never below the configured floor.
        minimum_validators=max(requested_minimum, config['COMMUNITY_MIN_VALIDATORS']),
        expires_at=utcnow() + timedelta(hours=hours),
    )
    validation.validators = []
    validation.ai_assessment = ai_assessment(target_type, target, validation_type)
    validation.incentives = {'reward_pool': reward_pool, 'distributed_rewards': 0, 'validator_rewards': []}
    validation.meta = {'priority': priority, 'difficulty': difficulty, 'tags': options.get('tags') or []}
    db.session.add(validation)
    db.session.commit()
    current_app.logger.info(f"[community] created validation={validation.id} {target_type}:{target.id} "
                            f"type={validation_type}")
    return validation


def submit_vote(validation, validator_id, vote, confidence, reasoning='', evidence=None):
    if vote not in VALID_VOTES:
        raise ValidationError(f"vote must be one of: {', '.join(VALID_VOTES)}")
    try:
        confidence = int(confidence)
    except (TypeError, ValueError):
        raise ValidationError('confidence must be an integer between 1 and 100')
    if not 1 <= confidence <= 100:
        raise ValidationError('confidence must be an integer between 1 and 100')
    reasoning = reasoning or ''
    if len(reasoning) > MAX_REASONING_LENGTH:
        raise ValidationError(f'reasoning must be at most {MAX_REASONING_LENGTH} characters')
    validator = get_record(User, validator_id, 'Validator')
    verdict = validation.can_user_validate(validator.id)
    if not verdict['can_validate']:
        raise ValidationError(verdict['reason'])

    validation.add_vote(validator.id, vote, confidence, reasoning, evidence, validator.trust_score)
    db.session.commit()
    current_app.logger.info(f"[community] vote validation={validation.id} validator={validator.id} "
                            f"vote={vote} confidence={confidence} status={validation.status}")
    return validation


def reward_earned(validation, validator_id):
    if validation.status != 'completed':
        return False
    majority = validation.consensus.get('majority_vote')
    return any(str(v['validator_id']) == str(validator_id) and v['vote'] == majority
               for v in validation.validators)


def _sort_key(validation):
    return (-PRIORITY_ORDER.get(validation.meta.get('priority'), 0),
            -validation.created_at.timestamp(), -validation.id)


def active_validations():
    return sorted(CommunityValidation.query.filter_by(status='active').all(), key=_sort_key)


def validations_for_user(user_id, limit=10):
    user = db.session.get(User, user_id)
    if user is None:
        return []
    now = utcnow()
    open_items = CommunityValidation.query.filter(
        CommunityValidation.status == 'active', CommunityValidation.expires_at > now).all()
    available = [
        v for v in sorted(open_items, key=_sort_key)
        if v.can_user_validate(user.id, now)['can_validate']
        and user.trust_score >= DIFFICULTY_THRESHOLDS.get(v.meta.get('difficulty'), 0)
    ]
    return available[:limit]


def _has_open_validation(target_type, target_id):
    return CommunityValidation.query.filter(
        CommunityValidation.target_type == target_type,
        CommunityValidation.target_id == target_id,
        CommunityValidation.status.in_(('active', 'completed')),
    ).first() is not None


def auto_create_validations():
    """Open validations for low-authenticity reviews and low-trust users."""
    created = []
    reviews = Review.query.filter(Review.authenticity_score < AUTO_REVIEW_BELOW,
                                  Review.status == 'Active').limit(AUTO_REVIEW_LIMIT)
    for review in reviews:
        if not _has_open_validation('review', review.id):
            created.append(create_validation('review', review.id, 'authenticity',
                                             {'priority': 'high', 'reward_pool': 75}))
    users = User.query.filter(User.trust_score < AUTO_USER_BELOW,
                              User.risk_level == 'High').limit(AUTO_USER_LIMIT)
    for user in users:
        if not _has_open_validation('user', user.id):
            created.append(create_validation('user', user.id, 'trust_verification',
                                             {'priority': 'high', 'reward_pool': 100}))
    current_app.logger.info(f"[community] auto-created {len(created)} validations")
    return created


def _average(values):
    values = [v for v in values if v is not None]
    return round(sum(values) / len(values), 2) if values else 0


def validation_stats():
    validations = CommunityValidation.query.all()
    by_status = {}
    by_type = {}
    for validation in validations:
        by_status.setdefault(validation.status, []).append(validation)
        by_type.setdefault(validation.validation_type, []).append(validation)
    rewards = [v.incentives.get('distributed_rewards', 0) for v in validations]
    validator_ids = {str(vote['validator_id']) for v in validations for vote in v.validators}
    return {
        'status_stats': [{
            'status': status,
            'count': len(items),
            'avg_validators': _average([i.consensus.get('total_validators') for i in items]),
            'avg_confidence': _average([i.consensus.get('confidence') for i in items]),
        } for status, items in by_status.items()],
        'type_stats': [{
            'validation_type': kind,
            'count': len(items),
            'avg_score': _average([i.consensus.get('overall_score') for i in items]),
        } for kind, items in by_type.items()],
        'reward_stats': {'total_rewards': sum(rewards), 'avg_reward': _average(rewards)},
        'real_time_stats': {
            'active_validations': len(by_status.get('active', [])),
            'completed_validations': len(by_status.get('completed', [])),
            'unique_validators': len(validator_ids),
        },
    }


def user_history(user_id):
    history = []
    validations = CommunityValidation.query.order_by(CommunityValidation.created_at.desc()).all()
    for validation in validations:
        vote = next((v for v in validation.validators if str(v['validator_id']) == str(user_id)), None)
        if vote is None:
            continue
        history.append({
            'validation_id': validation.id,
            'question': validation.question,
            'target_type': validation.target_type,
            'user_vote': vote['vote'],
            'user_confidence': vote['confidence'],
            'consensus': validation.consensus,
            'was_correct': vote['vote'] == validation.consensus.get('majority_vote'),
            'reward': validation.reward_for(user_id),
            'timestamp': vote['timestamp'],
            'status': validation.status,
        })
    return history


def leaderboard(limit=10):
    totals = {}
    for validation in CommunityValidation.query.all():
        for vote in validation.validators:
            entry = totals.setdefault(vote['validator_id'], {'count': 0, 'confidence': 0, 'rewards': 0})
            entry['count'] += 1
            entry['confidence'] += vote['confidence']
        for reward in validation.incentives.get('validator_rewards', []):
            if reward['validator_id'] in totals:
                totals[reward['validator_id']]['rewards'] += reward['amount']
    board = []
    for validator_id, entry in totals.items():
        user = db.session.get(User, validator_id)
        if user is None:
            continue
        board.append({
            'user_id': user.id,
            'username': user.username,
            'trust_score': user.trust_score,
            'total_validations': entry['count'],
            'avg_confidence': round(entry['confidence'] / entry['count'], 1),
            'total_rewards': round(entry['rewards'], 2),
        })
    board.sort(key=lambda e: (-e['total_validations'], -e['avg_confidence']))
    return board[:limit]


def dispute(validation, disputer_id, reason, evidence=None):
    if validation.status != 'completed':
        raise ValidationError('Can only dispute completed validations')
    if not reason:
        raise ValidationError('A dispute reason is required')
    meta = validation.meta
    meta['dispute'] = {
        'disputer_id': disputer_id,
        'reason': reason,
        'evidence': evidence or [],
        'timestamp': isoformat(utcnow()),
    }
    validation.meta = meta
    validation.status = 'disputed'
    db.session.commit()
    current_app.logger.info(f"[community] validation={validation.id} disputed: {reason}")
    return validation
