"""Trust and fraud forecasts for stored users."""
from datetime import timedelta

from trustlens.models import Alert, User, get_record, utcnow
from trustlens.services.scoring import prediction

ALERT_WINDOW = timedelta(days=30)
CANDIDATE_USERS = 20
TRUST_TARGET = 70
TRUST_TIMEFRAME_DAYS = 30
FRAUD_TIMEFRAME_DAYS = 14
TRUST_SUGGESTION_CONFIDENCE = 60
FRAUD_SUGGESTION_CONFIDENCE = 65


def recent_alert_count(user, now=None):
    since = (now or utcnow()) - ALERT_WINDOW
    return Alert.query.filter(Alert.target == str(user.id), Alert.created_at >= since).count()


def factors_for(user):
    return prediction.trust_factors(user.trust_score, user.account_age, user.transaction_count,
                                    user.risk_level, user.typing_cadence, recent_alert_count(user))


def predict_trust(user_id, timeframe_days=TRUST_TIMEFRAME_DAYS, target_score=TRUST_TARGET):
    user = get_record(User, user_id, 'User')
    return prediction.predict_trust(factors_for(user), timeframe_days, target_score)


def predict_fraud(user_id, timeframe_days=FRAUD_TIMEFRAME_DAYS):
    user = get_record(User, user_id, 'User')
    result = prediction.predict_fraud(factors_for(user))
    result['timeframe_days'] = timeframe_days
    return result


def market_suggestions(limit=5):
    """Suggest prediction questions where the forecast is confident enough to price."""
    suggestions = []
    users = User.query.order_by(User.created_at.desc(), User.id.desc()).limit(CANDIDATE_USERS)
    for user in users:
        factors = factors_for(user)
        trust = prediction.predict_trust(factors, TRUST_TIMEFRAME_DAYS, TRUST_TARGET)
        if trust['confidence'] > TRUST_SUGGESTION_CONFIDENCE:
            suggestions.append({
                'type': 'trust_score_prediction',
                'target_user': user.id,
                'question': f"Will {user.username}'s trust score reach {TRUST_TARGET}+ in "
                            f"{TRUST_TIMEFRAME_DAYS} days?",
                'ai_prediction': trust,
                'suggested_odds': prediction.suggested_odds(trust['confidence'], trust['prediction']),
            })
        fraud = prediction.predict_fraud(factors)
        if fraud['confidence'] > FRAUD_SUGGESTION_CONFIDENCE:
            suggestions.append({
                'type': 'fraud_likelihood',
                'target_user': user.id,
                'question': f'Will {user.username} engage in fraudulent activity in {FRAUD_TIMEFRAME_DAYS} days?',
                'ai_prediction': fraud,
                'suggested_odds': prediction.suggested_odds(fraud['confidence'], fraud['prediction']),
            })
        if len(suggestions) >= limit:
            break
    return suggestions[:limit]
