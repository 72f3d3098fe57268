from flask import Blueprint, jsonify, request

from trustlens.socketio_events import broadcast_alert, broadcast_trust_score_change, connection_stats

realtime = Blueprint('realtime', __name__)


@realtime.route('/stats', methods=['GET'])
def stats():
    return jsonify(connection_stats())


@realtime.route('/broadcast-alert', methods=['POST'])
def broadcast():
    alert = request.get_json(silent=True) or {}
    if not alert.get('description') and not alert.get('type'):
        return jsonify({'error': 'Alert type or description is required'}), 400
    broadcast_alert(alert)
    return jsonify({'success': True, 'message': 'Alert broadcasted'})


@realtime.route('/trust-score-change', methods=['POST'])
def trust_score_change():
    data = request.get_json(silent=True) or {}
    if data.get('user_id') is None:
        return jsonify({'error': 'user_id is required'}), 400
    broadcast_trust_score_change(data['user_id'], data.get('old_score'), data.get('new_score'), data.get('reason'))
    return jsonify({'success': True, 'message': 'Trust score change broadcasted'})
