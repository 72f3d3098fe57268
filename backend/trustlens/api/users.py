from flask import Blueprint, jsonify, request

from trustlens.models import User, get_record
from trustlens.services import marketplace
from trustlens.services.scoring.behavior import analyze_typing_behavior

users = Blueprint('users', __name__)


@users.route('/', methods=['POST'])
def create_user():
    data = request.get_json(silent=True) or {}
    user = marketplace.create_user(data, ip_address=request.remote_addr)
    return jsonify({
        'user': user.to_dict(),
        'behavior_analysis': user.behavior_data.get('ai_analysis'),
        'alerts': marketplace.user_alerts(user),
    }), 201


@users.route('/', methods=['GET'])
def list_users():
    return jsonify([u.to_dict() for u in User.query.order_by(User.created_at.desc(), User.id.desc())])


@users.route('/<int:user_id>', methods=['GET'])
def get_user(user_id):
    user = get_record(User, user_id, 'User')
    data = user.to_dict()
    if user.typing_cadence:
        data['realtime_behavior_analysis'] = analyze_typing_behavior(user.typing_cadence)
    return jsonify(data)


@users.route('/<int:user_id>', methods=['PUT'])
def update_user(user_id):
    user = get_record(User, user_id, 'User')
    data = request.get_json(silent=True) or {}
    return jsonify(marketplace.update_user(user, data).to_dict())


@users.route('/<int:user_id>/analyze-behavior', methods=['POST'])
def analyze_behavior(user_id):
    user = get_record(User, user_id, 'User')
    data = request.get_json(silent=True) or {}
    typing_data = data.get('typing_data') or []
    if not isinstance(typing_data, list):
        return jsonify({'success': False, 'error': 'typing_data must be a list'}), 400
    return jsonify(marketplace.analyze_user_behavior(user, typing_data, data.get('mouse_data')))


@users.route('/<int:user_id>/alerts', methods=['GET'])
def user_alerts(user_id):
    return jsonify(marketplace.user_alerts(get_record(User, user_id, 'User')))


@users.route('/<int:user_id>/ip-analysis', methods=['GET'])
def ip_analysis(user_id):
    user = get_record(User, user_id, 'User')
    analysis = marketplace.ip_analysis(user)
    if analysis is None:
        return jsonify({'error': 'User has no recorded IP address'}), 404
    return jsonify({'data': analysis})


@users.route('/<int:user_id>/recalculate-trust', methods=['POST'])
def recalculate_trust(user_id):
    return jsonify({'data': marketplace.recalculate_user_trust(get_record(User, user_id, 'User'))})
