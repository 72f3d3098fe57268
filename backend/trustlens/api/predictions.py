from flask import Blueprint, jsonify, request

from trustlens.services import predictions as prediction_service
from trustlens.services.scoring.prediction import suggested_odds

predictions = Blueprint('predictions', __name__)


def _int_arg(name, default, minimum=1):
    value = request.args.get(name, default)
    try:
        value = int(value)
    except (TypeError, ValueError):
        return None
    return value if value >= minimum else None


@predictions.route('/trust/<int:user_id>', methods=['GET'])
def trust(user_id):
    timeframe = _int_arg('timeframe_days', prediction_service.TRUST_TIMEFRAME_DAYS)
    target = _int_arg('target_score', prediction_service.TRUST_TARGET, minimum=0)
    if timeframe is None or target is None or target > 100:
        return jsonify({'error': 'timeframe_days must be a positive integer and target_score within 0-100'}), 400
    return jsonify(prediction_service.predict_trust(user_id, timeframe, target))


@predictions.route('/fraud/<int:user_id>', methods=['GET'])
def fraud(user_id):
    timeframe = _int_arg('timeframe_days', prediction_service.FRAUD_TIMEFRAME_DAYS)
    if timeframe is None:
        return jsonify({'error': 'timeframe_days must be a positive integer'}), 400
    return jsonify(prediction_service.predict_fraud(user_id, timeframe))


@predictions.route('/market-suggestions', methods=['GET'])
def market_suggestions():
    limit = _int_arg('limit', 5)
    if limit is None:
        return jsonify({'error': 'limit must be a positive integer'}), 400
    suggestions = prediction_service.market_suggestions(limit)
    return jsonify({'count': len(suggestions), 'suggestions': suggestions})


@predictions.route('/odds', methods=['GET'])
def odds():
    prediction = request.args.get('prediction', 'yes')
    try:
        confidence = float(request.args.get('confidence', 50))
    except (TypeError, ValueError):
        confidence = None
    if confidence is None or not 0 <= confidence <= 100 or prediction not in ('yes', 'no'):
        return jsonify({'error': "confidence must be within 0-100 and prediction 'yes' or 'no'"}), 400
    return jsonify(suggested_odds(confidence, prediction))
