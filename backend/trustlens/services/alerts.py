"""Alert creation and the rule checks that raise them."""
from statistics import pvariance

from flask import current_app

from trustlens import db
from trustlens.models import Alert
from trustlens.socketio_events import broadcast_alert

BOT_TYPING_VARIANCE = 50
LOW_TRUST_SCORE = 30
REVIEW_ALERT_BELOW = 60
REVIEW_CRITICAL_BELOW = 40


def create_alert(type, target, target_type, severity, description, data=None, actions=None,
                 source='system', broadcast=True):
    alert = Alert(type=type, target=str(target), target_type=target_type, severity=severity,
                  description=description, source=source)
    alert.data = data or {}
    alert.actions = actions or []
    db.session.add(alert)
    db.session.commit()
    current_app.logger.info(f"[alert] {alert.type} severity={alert.severity} target={alert.target_type}:{alert.target}")
    if broadcast:
        broadcast_alert(alert.to_dict())
    return alert


def typing_variance(cadence):
    if len(cadence) < 2:
        return 100
    return round(pvariance([float(v) for v in cadence]))


def check_user_behavior(user):
    alerts = []
    cadence = user.typing_cadence
    if cadence:
        variance = typing_variance(cadence)
        if variance < BOT_TYPING_VARIANCE:
            alerts.append(create_alert(
                'Suspicious Typing Pattern', user.id, 'User', 'High',
                f"User {user.username} shows bot-like typing patterns with variance: {variance}",
                data={'variance': variance, 'typing_cadence': cadence},
                actions=['Flag Account', 'Manual Review']))
    if user.account_age < 7 and user.transaction_count > 10:
        alerts.append(create_alert(
            'Rapid Activity', user.id, 'User', 'Medium',
            f"New account {user.username} has high transaction volume "
            f"({user.transaction_count} transactions in {user.account_age} days)",
            data={'account_age': user.account_age, 'transaction_count': user.transaction_count},
            actions=['Manual Review']))
    if user.trust_score < LOW_TRUST_SCORE:
        alerts.append(create_alert(
            'Trust Score Drop', user.id, 'User', 'High',
            f"User {user.username} has critically low trust score: {user.trust_score}",
            data={'trust_score': user.trust_score},
            actions=['Flag Account', 'Temporary Suspension']))
    return alerts


def check_review_authenticity(review):
    if review.authenticity_score >= REVIEW_ALERT_BELOW:
        return []
    severity = 'Critical' if review.authenticity_score < REVIEW_CRITICAL_BELOW else 'High'
    return [create_alert(
        'Fake Review Detection', review.id, 'Review', severity,
        f"Review has low authenticity score: {review.authenticity_score}% "
        f"(AI Generated: {review.is_ai_generated})",
        data={
            'authenticity_score': review.authenticity_score,
            'is_ai_generated': review.is_ai_generated,
            'linguistic_analysis': review.linguistic_analysis,
        },
        actions=['Remove Content', 'Flag Account'])]


def alert_stats():
    alerts = Alert.query.all()
    by_severity = {}
    by_type = {}
    by_status = {}
    for alert in alerts:
        by_severity[alert.severity] = by_severity.get(alert.severity, 0) + 1
        by_type[alert.type] = by_type.get(alert.type, 0) + 1
        by_status[alert.status] = by_status.get(alert.status, 0) + 1
    return {
        'total': len(alerts),
        'active': by_status.get('Active', 0),
        'by_severity': by_severity,
        'by_type': by_type,
        'by_status': by_status,
    }
