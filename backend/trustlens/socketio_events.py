from flask_socketio import join_room, emit
from flask import current_app, request
from trustlens import socketio, db
from trustlens.services.scoring.behavior import analyze_mouse_movements, realtime_typing_analysis
from datetime import datetime, timezone
from typing import Dict, Any, Set

NAMESPACE = '/ws'
ALERTS_ROOM = 'alerts'

# Per-socket context; cleared on disconnect
_connected: Dict[str, Dict[str, Any]] = {}
_rooms: Dict[str, Set[str]] = {}


def _get_sid() -> str:
    return request.sid  # type: ignore


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def handle_connect():
    _connected.setdefault(_get_sid(), {})
    emit('connected', {'message': 'Connected to /ws', 'socket_id': _get_sid()})


def handle_disconnect(*args):
    sid = _get_sid()
    _connected.pop(sid, None)
    _rooms.pop(sid, None)


def handle_authenticate(data):
    data = data or {}
    _connected[_get_sid()] = data
    emit('authenticated', {'success': True, 'socket_id': _get_sid()})
    current_app.logger.info(f"[ws] authenticated {data.get('username') or 'anonymous'}")


def handle_typing_data(data):
    data = data or {}
    cadence = data.get('typing_cadence') or []
    if not isinstance(cadence, list):
        emit('analysis_error', {'message': 'Typing analysis failed'})
        return
    try:
        analysis = realtime_typing_analysis(cadence)
    except (TypeError, ValueError):
        emit('analysis_error', {'message': 'Typing analysis failed'})
        return
    analysis['timestamp'] = data.get('timestamp')
    emit('typing_analysis_result', {'user_id': data.get('user_id'), 'analysis': analysis})
    classification = analysis['classification']
    if classification['risk'] == 'High':
        socketio.emit('real_time_alert', {
            'type': 'Suspicious Typing Pattern',
            'user_id': data.get('user_id'),
            'severity': 'High',
            'data': {'typing_cadence': cadence, 'classification': classification},
            'timestamp': _now(),
        }, to=ALERTS_ROOM, namespace=NAMESPACE)


def handle_mouse_data(data):
    data = data or {}
    try:
        analysis = analyze_mouse_movements(data.get('mouse_movements'))
    except (KeyError, TypeError):
        emit('analysis_error', {'message': 'Mouse analysis failed'})
        return
    emit('mouse_analysis_result', {
        'user_id': data.get('user_id'),
        'analysis': analysis,
        'timestamp': data.get('timestamp'),
    })
    if analysis['is_bot']:
        socketio.emit('real_time_alert', {
            'type': 'Bot Mouse Pattern',
            'user_id': data.get('user_id'),
            'severity': 'High',
            'data': {'analysis': analysis},
            'timestamp': _now(),
        }, to=ALERTS_ROOM, namespace=NAMESPACE)


def _trend(user) -> str:
    if user.risk_level == 'Low':
        return 'increasing'
    if user.risk_level == 'High':
        return 'decreasing'
    return 'stable'


def handle_request_trust_update(data):
    from trustlens.models import User
    user_id = data.get('user_id') if isinstance(data, dict) else data
    try:
        user = db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        user = None
    if not user:
        emit('trust_update_error', {'message': 'Failed to fetch trust score', 'user_id': user_id})
        return
    emit('trust_score_update', {
        'user_id': user.id,
        'current_score': user.trust_score,
        'risk_level': user.risk_level,
        'trend': _trend(user),
        'last_updated': user.updated_at.isoformat() if user.updated_at else None,
    })


def handle_subscribe_alerts(filters):
    filters = filters or {}
    joined = _rooms.setdefault(_get_sid(), set())
    join_room(ALERTS_ROOM)
    joined.add(ALERTS_ROOM)
    severity = filters.get('severity')
    if severity:
        room = f"alerts_{severity}"
        join_room(room)
        joined.add(room)
    emit('alert_subscription_confirmed', filters)


def handle_marketplace_activity(activity):
    payload = dict(activity or {})
    payload['timestamp'] = _now()
    payload['connected_users'] = len(_connected)
    socketio.emit('marketplace_update', payload, namespace=NAMESPACE)


# ---- Server-side broadcasts used by HTTP routes and services ----

def broadcast_alert(alert: Dict[str, Any]) -> None:
    payload = dict(alert)
    payload['timestamp'] = _now()
    socketio.emit('new_alert', payload, to=ALERTS_ROOM, namespace=NAMESPACE)
    if alert.get('severity'):
        socketio.emit('severity_alert', alert, to=f"alerts_{alert['severity']}", namespace=NAMESPACE)


def broadcast_trust_score_change(user_id, old_score, new_score, reason) -> None:
    socketio.emit('trust_score_changed', {
        'user_id': user_id,
        'old_score': old_score,
        'new_score': new_score,
        'change': round((new_score or 0) - (old_score or 0), 2),
        'reason': reason,
        'timestamp': _now(),
    }, namespace=NAMESPACE)


def broadcast_review_status_update(review_id, status, details=None) -> None:
    socketio.emit('review_status_update', {
        'review_id': review_id,
        'status': status,
        'details': details or {},
        'timestamp': _now(),
    }, namespace=NAMESPACE)


def broadcast_bulk_operation_complete(operation: str, results: Dict[str, Any]) -> None:
    socketio.emit('bulk_operation_complete', {
        'operation': operation,
        'results': results,
        'timestamp': _now(),
    }, namespace=NAMESPACE)


def connection_stats() -> Dict[str, int]:
    rooms = set()
    for joined in _rooms.values():
        rooms |= joined
    return {
        'connected_users': len(_connected),
        'authenticated_users': sum(1 for ctx in _connected.values() if ctx),
        'active_rooms': len(rooms),
    }


HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'authenticate': handle_authenticate,
    'typing_data': handle_typing_data,
    'mouse_data': handle_mouse_data,
    'request_trust_update': handle_request_trust_update,
    'subscribe_alerts': handle_subscribe_alerts,
    'marketplace_activity': handle_marketplace_activity,
}


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for name, handler in HANDLERS.items():
        socketio.on_event(name, handler, namespace=NAMESPACE)
    if testing:
        for name, handler in HANDLERS.items():
            socketio.on_event(name, handler, namespace='/')
