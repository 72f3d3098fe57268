from statistics import pvariance
from typing import Dict, Optional, Sequence

TRUST_MODEL_VERSION = 'TrustPredict-v1.0'
FRAUD_MODEL_VERSION = 'FraudPredict-v1.0'


def trust_factors(trust_score, account_age, transaction_count, risk_level,
                  typing_cadence: Optional[Sequence[float]], recent_alerts: int) -> Dict:
    cadence = [float(v) for v in (typing_cadence or [])]
    variance = pvariance(cadence) if len(cadence) >= 2 else 0
    if account_age:
        recent_activity = min(100, transaction_count / account_age * 10)
    else:
        recent_activity = 100 if transaction_count else 0
    return {
        'current_trust_score': trust_score,
        'account_age': account_age,
        'transaction_count': transaction_count,
        'risk_level': risk_level,
        'behavioral_consistency': min(100, variance / 10) if variance > 0 else 0,
        'recent_activity': recent_activity,
        'alert_history': recent_alerts,
    }


def predict_trust(factors: Dict, timeframe_days: int, target_score: float) -> Dict:
    confidence = 50
    reasoning = []
    gap = target_score - factors['current_trust_score']
    daily_change = gap / max(timeframe_days, 1)

    if factors['account_age'] > 30:
        confidence += 10
        reasoning.append('Established account age increases reliability')
    if factors['transaction_count'] > 10:
        confidence += 8
        reasoning.append('Good transaction history')
    if factors['behavioral_consistency'] > 50:
        confidence += 12
        reasoning.append('Consistent behavioral patterns')
    if factors['risk_level'] == 'Low':
        confidence += 15
        reasoning.append('Low risk classification')
    if factors['alert_history'] > 3:
        confidence -= 20
        reasoning.append('Multiple recent security alerts')
    if factors['risk_level'] == 'High':
        confidence -= 25
        reasoning.append('High risk classification')
    if abs(daily_change) > 2:
        confidence -= 15
        reasoning.append('Large trust score change required')

    outcome = 'yes' if gap <= 0 or confidence > 60 else 'no'
    return {
        'prediction': outcome,
        'confidence': max(10, min(90, confidence)),
        'reasoning': reasoning or ['Standard trust analysis applied'],
        'model_version': TRUST_MODEL_VERSION,
        'factors': factors,
    }


def predict_fraud(factors: Dict) -> Dict:
    fraud_score = 0
    reasoning = []
    if factors['current_trust_score'] < 30:
        fraud_score += 30
        reasoning.append('Very low trust score')
    if factors['alert_history'] > 2:
        fraud_score += 25
        reasoning.append('Multiple security alerts')
    if factors['behavioral_consistency'] < 20:
        fraud_score += 20
        reasoning.append('Suspicious behavioral patterns')
    if factors['account_age'] < 7:
        fraud_score += 15
        reasoning.append('Very new account')
    return {
        'prediction': 'yes' if fraud_score > 50 else 'no',
        'confidence': min(90, fraud_score + 10),
        'reasoning': reasoning,
        'fraud_score': fraud_score,
        'model_version': FRAUD_MODEL_VERSION,
    }


def suggested_odds(confidence: float, prediction: str) -> Dict:
    probability = confidence / 100 if prediction == 'yes' else (100 - confidence) / 100
    return {
        'yes': round(1 / max(0.1, probability), 2),
        'no': round(1 / max(0.1, 1 - probability), 2),
    }
