from flask import Blueprint, jsonify, request

from trustlens import db
from trustlens.models import CommunityValidation, Product, Review, User, get_record
from trustlens.services import community as community_service

community = Blueprint('community', __name__)

TARGET_MODELS = {'User': User, 'Review': Review, 'Product': Product}


@community.route('/', methods=['GET'])
def active():
    return jsonify([v.to_dict() for v in community_service.active_validations()])


@community.route('/user/<int:user_id>/available', methods=['GET'])
def available(user_id):
    limit = request.args.get('limit', 10, type=int)
    return jsonify([v.to_dict() for v in community_service.validations_for_user(user_id, limit)])


@community.route('/', methods=['POST'])
def create():
    data = request.get_json(silent=True) or {}
    if not all([data.get('target_type'), data.get('target_id'), data.get('validation_type')]):
        return jsonify({'error': 'target_type, target_id and validation_type are required'}), 400
    validation = community_service.create_validation(data['target_type'], data['target_id'],
                                                     data['validation_type'], data.get('options'))
    return jsonify(validation.to_dict()), 201


@community.route('/<int:validation_id>/validate', methods=['POST'])
def validate(validation_id):
    validation = get_record(CommunityValidation, validation_id, 'Validation')
    data = request.get_json(silent=True) or {}
    community_service.submit_vote(validation, data.get('validator_id'), data.get('vote'),
                                  data.get('confidence'), data.get('reasoning'), data.get('evidence'))
    return jsonify({
        'success': True,
        'validation': validation.to_dict(),
        'consensus': validation.consensus,
        'reward_earned': community_service.reward_earned(validation, data.get('validator_id')),
    })


@community.route('/<int:validation_id>', methods=['GET'])
def detail(validation_id):
    validation = get_record(CommunityValidation, validation_id, 'Validation')
    data = validation.to_dict()
    model = TARGET_MODELS.get(validation.target_model)
    target = db.session.get(model, validation.target_id) if model else None
    data['target'] = target.to_dict() if target else None
    return jsonify(data)


@community.route('/auto-create', methods=['POST'])
def auto_create():
    created = community_service.auto_create_validations()
    return jsonify({'success': True, 'created': len(created), 'validations': [v.to_dict() for v in created]})


@community.route('/stats/overview', methods=['GET'])
def stats():
    return jsonify(community_service.validation_stats())


@community.route('/user/<int:user_id>/history', methods=['GET'])
def history(user_id):
    return jsonify(community_service.user_history(user_id))


@community.route('/leaderboard/validators', methods=['GET'])
def leaderboard():
    return jsonify(community_service.leaderboard(request.args.get('limit', 10, type=int)))


@community.route('/<int:validation_id>/can-validate/<int:user_id>', methods=['GET'])
def can_validate(validation_id, user_id):
    validation = get_record(CommunityValidation, validation_id, 'Validation')
    return jsonify(validation.can_user_validate(user_id))


@community.route('/<int:validation_id>/dispute', methods=['POST'])
def dispute(validation_id):
    validation = get_record(CommunityValidation, validation_id, 'Validation')
    data = request.get_json(silent=True) or {}
    community_service.dispute(validation, data.get('disputer_id'), data.get('reason'), data.get('evidence'))
    return jsonify({'success': True, 'message': 'Dispute submitted successfully',
                    'validation': validation.to_dict()})
