from flask import Blueprint, jsonify, request

from trustlens import db
from trustlens.models import (
    ALERT_ACTIONS, ALERT_SEVERITIES, ALERT_STATUSES, ALERT_TARGET_TYPES, ALERT_TYPES, Alert, get_record, utcnow,
)
from trustlens.services.alerts import alert_stats, create_alert

alerts = Blueprint('alerts', __name__)


def _newest_first(query):
    return [a.to_dict() for a in query.order_by(Alert.created_at.desc(), Alert.id.desc())]


def _check_choice(data, field, choices):
    if field in data and data[field] not in choices:
        return f"{field} must be one of: {', '.join(choices)}"
    return None


def _check_alert_fields(data):
    for field, choices in (('type', ALERT_TYPES), ('target_type', ALERT_TARGET_TYPES),
                           ('severity', ALERT_SEVERITIES), ('status', ALERT_STATUSES)):
        error = _check_choice(data, field, choices)
        if error:
            return error
    actions = data.get('actions') or []
    if not isinstance(actions, list) or any(a not in ALERT_ACTIONS for a in actions):
        return f"actions must be a list drawn from: {', '.join(ALERT_ACTIONS)}"
    return None


@alerts.route('/', methods=['GET'])
def active_alerts():
    return jsonify(_newest_first(Alert.query.filter_by(status='Active')))


@alerts.route('/', methods=['POST'])
def create():
    data = request.get_json(silent=True) or {}
    missing = [f for f in ('type', 'target', 'target_type', 'severity', 'description') if not data.get(f)]
    if missing:
        return jsonify({'error': f"Missing required fields: {', '.join(missing)}"}), 400
    error = _check_alert_fields(data)
    if error:
        return jsonify({'error': error}), 400
    alert = create_alert(data['type'], data['target'], data['target_type'], data['severity'],
                         data['description'], data.get('data'), data.get('actions'),
                         source=data.get('source') or 'api')
    return jsonify(alert.to_dict()), 201


@alerts.route('/<int:alert_id>', methods=['PUT'])
def update(alert_id):
    alert = get_record(Alert, alert_id, 'Alert')
    data = request.get_json(silent=True) or {}
    error = _check_alert_fields(data)
    if error:
        return jsonify({'error': error}), 400
    for field in ('type', 'severity', 'description', 'status', 'source'):
        if field in data:
            setattr(alert, field, data[field])
    if 'actions' in data:
        alert.actions = data['actions']
    if 'data' in data:
        alert.data = data['data'] or {}
    db.session.commit()
    return jsonify(alert.to_dict())


@alerts.route('/type/<string:alert_type>', methods=['GET'])
def by_type(alert_type):
    return jsonify(_newest_first(Alert.query.filter_by(type=alert_type, status='Active')))


@alerts.route('/severity/<string:severity>', methods=['GET'])
def by_severity(severity):
    return jsonify(_newest_first(Alert.query.filter_by(severity=severity, status='Active')))


def _close(alert_id, status):
    alert = get_record(Alert, alert_id, 'Alert')
    alert.status = status
    alert.resolved_at = utcnow()
    db.session.commit()
    return jsonify(alert.to_dict())


@alerts.route('/<int:alert_id>/resolve', methods=['PUT'])
def resolve(alert_id):
    return _close(alert_id, 'Resolved')


@alerts.route('/<int:alert_id>/dismiss', methods=['PUT'])
def dismiss(alert_id):
    return _close(alert_id, 'Dismissed')


@alerts.route('/stats', methods=['GET'])
def stats():
    return jsonify(alert_stats())
