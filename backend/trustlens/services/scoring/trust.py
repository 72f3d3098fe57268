"""Trust scoring for customers and vendors.

Pure functions only: callers pass in whatever they loaded from the
database and persist the result themselves.
"""
from statistics import fmean, pvariance
from typing import Dict, List, Optional, Sequence

BASE_SCORE = 50
AGE_POINTS_PER_DAY = 2
AGE_POINTS_CAP = 20
TX_POINTS_PER_TX = 0.5
TX_POINTS_CAP = 15

TYPING_MIN_SAMPLES = 5
TYPING_VARIANCE_LOW = 100
TYPING_VARIANCE_HIGH = 10000
TYPING_WEIGHT = 10

RISK_ADJUSTMENTS = {'Low': 10, 'Medium': 0, 'High': -15}

UNIQUE_IP_BONUS = 10
SHARED_IP_PENALTY = -15
SHARED_IP_THRESHOLD = 3

NEW_ACCOUNT_DAYS = 7
RAPID_TX_COUNT = 10

VENDOR_SUSPICIOUS_REVIEW_SCORE = 60
VENDOR_SUSPICIOUS_RATE_WEIGHT = 2
VENDOR_PRODUCT_BONUS_MIN = 5
VENDOR_REVIEW_BONUS_MIN = 10
VENDOR_SIZE_BONUS = 5
RETURN_RATE_HIGH = 20
RETURN_RATE_ELEVATED = 10


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def typing_consistency(typing_cadence: Optional[Sequence[float]]) -> int:
    """Return +1 for human-looking keystroke variance, -1 otherwise, 0 without data."""
    cadence = [float(v) for v in (typing_cadence or [])]
    if len(cadence) < TYPING_MIN_SAMPLES:
        return 0
    variance = pvariance(cadence)
    if TYPING_VARIANCE_LOW < variance < TYPING_VARIANCE_HIGH:
        return 1
    return -1


def ip_adjustment(sharers: Optional[int]) -> int:
    """Score adjustment for the number of accounts seen on one IP (including this one)."""
    if sharers is None or sharers <= 0:
        return 0
    if sharers == 1:
        return UNIQUE_IP_BONUS
    if sharers >= SHARED_IP_THRESHOLD:
        return SHARED_IP_PENALTY
    return 0


def ip_status(sharers: Optional[int]) -> str:
    if sharers is None or sharers <= 0:
        return 'unknown'
    if sharers == 1:
        return 'unique'
    if sharers >= SHARED_IP_THRESHOLD:
        return 'shared'
    return 'household'


def calculate_trust_score(account_age=0, transaction_count=0, typing_cadence=None,
                          risk_level='Medium', ip_sharers=None) -> float:
    score = float(BASE_SCORE)
    score += min(max(account_age or 0, 0) * AGE_POINTS_PER_DAY, AGE_POINTS_CAP)
    score += min(max(transaction_count or 0, 0) * TX_POINTS_PER_TX, TX_POINTS_CAP)
    score += typing_consistency(typing_cadence) * TYPING_WEIGHT
    score += RISK_ADJUSTMENTS.get(risk_level, 0)
    score += ip_adjustment(ip_sharers)
    return round(clamp(score), 2)


def detect_suspicious_activity(account_age=0, transaction_count=0, typing_cadence=None) -> List[Dict]:
    alerts = []
    if typing_consistency(typing_cadence) < 0:
        alerts.append({
            'type': 'Suspicious Typing Pattern',
            'severity': 'High',
            'description': 'Typing pattern suggests automated behavior',
        })
    if (account_age or 0) < NEW_ACCOUNT_DAYS and (transaction_count or 0) > RAPID_TX_COUNT:
        alerts.append({
            'type': 'Rapid Activity',
            'severity': 'Medium',
            'description': 'High transaction volume for new account',
        })
    return alerts


def return_rate(total_sales, total_returns) -> float:
    if not total_sales:
        return 0.0
    return round((total_returns or 0) / total_sales * 100, 2)


def vendor_trust_score(review_scores: Sequence[float], suspicious_reviews: int, product_count: int,
                       total_sales: int = 0, total_returns: int = 0) -> float:
    """Aggregate a vendor's trust from the authenticity of reviews on its products."""
    review_scores = list(review_scores or [])
    if review_scores:
        score = fmean(review_scores)
        suspicious_rate = suspicious_reviews / len(review_scores) * 100
        score -= suspicious_rate * VENDOR_SUSPICIOUS_RATE_WEIGHT
    else:
        score = float(BASE_SCORE)
    if product_count > VENDOR_PRODUCT_BONUS_MIN:
        score += VENDOR_SIZE_BONUS
    if len(review_scores) > VENDOR_REVIEW_BONUS_MIN:
        score += VENDOR_SIZE_BONUS
    rate = return_rate(total_sales, total_returns)
    if rate > RETURN_RATE_HIGH:
        score -= 10
    elif rate > RETURN_RATE_ELEVATED:
        score -= 5
    return round(clamp(score), 2)
