import io
from datetime import datetime, timezone

from PIL import Image

from trustlens.services.scoring import behavior, consensus, image, linguistic, prediction, review_auth, trust
from trustlens.services.scoring import review_metrics, text_ai

HUMAN_TYPING = [120, 95, 180, 60, 140, 210, 75]
NOON = datetime(2024, 5, 14, 12, 0, tzinfo=timezone.utc)


def _png(width, height):
    buffer = io.BytesIO()
    Image.new('RGB', (width, height), (120, 80, 200)).save(buffer, format='PNG')
    return buffer.getvalue()


# ---- trust ----

def test_trust_score_components():
    # 50 base + 20 age + 2 transactions + 10 low risk + 10 unique ip
    assert trust.calculate_trust_score(10, 4, None, 'Low', 1) == 92
    # age and transaction bonuses are capped
    assert trust.calculate_trust_score(100, 1000, None, 'Medium') == 85
    assert trust.calculate_trust_score(0, 0, None, 'High') == 35


def test_trust_score_typing_consistency():
    assert trust.calculate_trust_score(0, 0, [100, 120, 140, 160, 180], 'Medium') == 60
    assert trust.calculate_trust_score(0, 0, [100] * 6, 'Medium') == 40
    # too few samples carry no signal
    assert trust.calculate_trust_score(0, 0, [100, 100], 'Medium') == 50


def test_ip_adjustment_and_status():
    assert trust.ip_adjustment(None) == 0
    assert trust.ip_adjustment(1) == 10
    assert trust.ip_adjustment(2) == 0
    assert trust.ip_adjustment(7) == -15
    assert [trust.ip_status(n) for n in (None, 1, 2, 3)] == ['unknown', 'unique', 'household', 'shared']


def test_detect_suspicious_activity():
    alerts = trust.detect_suspicious_activity(3, 12, [100] * 6)
    assert {a['type'] for a in alerts} == {'Suspicious Typing Pattern', 'Rapid Activity'}
    assert trust.detect_suspicious_activity(30, 12, HUMAN_TYPING) == []


def test_vendor_trust_score():
    assert trust.vendor_trust_score([90, 80], 0, 1) == 85
    # one suspicious review out of two wipes the score
    assert trust.vendor_trust_score([90, 80], 1, 1) == 0
    # no reviews, 30% returns
    assert trust.vendor_trust_score([], 0, 1, 10, 3) == 40
    assert trust.return_rate(0, 5) == 0


# ---- behaviour ----

def test_typing_statistics_known_values():
    stats = behavior.typing_statistics([2, 4, 4, 4, 5, 5, 7, 9])
    assert stats['mean'] == 5.0
    assert stats['variance'] == 4
    assert stats['std_dev'] == 2.0
    assert behavior.typing_statistics([100, 100, 100])['skewness'] == 0.0


def test_typing_behavior_classification():
    assert behavior.analyze_typing_behavior([100, 100])['classification'] == 'insufficient_data'
    bot = behavior.analyze_typing_behavior([100] * 6)
    assert bot['classification'] == 'Bot'
    assert 'perfect_consistency' in bot['analysis']['risk_factors']
    human = behavior.analyze_typing_behavior(HUMAN_TYPING)
    assert human['classification'] == 'Human'
    assert human['analysis']['patterns']['rhythm'] is True


def test_realtime_typing_pattern():
    assert behavior.classify_typing_pattern([100, 100, 100]) == {'type': 'Bot', 'confidence': 95, 'risk': 'High'}
    assert behavior.classify_typing_pattern([100, 103, 98])['type'] == 'Suspicious'
    assert behavior.classify_typing_pattern(HUMAN_TYPING)['risk'] == 'Low'
    assert behavior.classify_typing_pattern([5])['type'] == 'insufficient_data'


def test_mouse_movements():
    line = [{'x': i + 1, 'y': 2 * (i + 1)} for i in range(12)]
    result = behavior.analyze_mouse_movements(line)
    assert result['is_bot'] is True
    assert result['confidence'] == 100
    assert behavior.analyze_mouse_movements(line[:5])['reason'] == 'Insufficient data'


def test_mouse_typing_correlation():
    result = behavior.mouse_typing_correlation([100, 200], [{'speed': 110}, {'speed': 400}])
    assert result == {'correlation_score': 0.5, 'is_natural_correlation': True}
    assert behavior.mouse_typing_correlation([100, 200], [{'speed': 110}]) is None


# ---- consensus ----

def test_validator_weight_bounds():
    assert consensus.validator_weight(100, 100) == 2.0
    assert consensus.validator_weight(0, 1) == 0.1
    assert consensus.validator_weight(100, 100, evidence_count=10) == 2.5


def test_weighted_majority_first_seen_wins_ties():
    assert consensus.weighted_majority([(1.0, 'fake'), (1.0, 'authentic')]) == ('fake', 1.0, 2.0)
    assert consensus.weighted_majority([]) == ('inconclusive', 0.0, 0.0)


def test_compute_consensus():
    votes = [{'vote': 'authentic', 'confidence': 80, 'validator_trust_score': 50}] * 5
    result = consensus.compute_consensus(votes, 5)
    assert result['majority_vote'] == 'authentic'
    assert result['confidence'] == 100
    assert result['overall_score'] == 100
    assert result['completed'] is True
    assert consensus.compute_consensus([], 5) is None


def test_low_weight_votes_still_average():
    result = consensus.compute_consensus([{'vote': 'authentic', 'confidence': 10, 'validator_trust_score': 20}], 1)
    assert result['overall_score'] == 100
    votes = [{'vote': 'authentic', 'confidence': 10, 'validator_trust_score': 20},
             {'vote': 'fake', 'confidence': 10, 'validator_trust_score': 20}]
    assert consensus.compute_consensus(votes, 1)['overall_score'] == 50


def test_split_vote_does_not_complete():
    votes = ([{'vote': 'authentic', 'confidence': 80, 'validator_trust_score': 50}] * 3
             + [{'vote': 'fake', 'confidence': 80, 'validator_trust_score': 50}] * 3)
    result = consensus.compute_consensus(votes, 5)
    assert result['confidence'] == 50
    assert result['completed'] is False


def test_distribute_rewards_and_can_validate():
    votes = [{'validator_id': 1, 'vote': 'fake'}, {'validator_id': 2, 'vote': 'fake'},
             {'validator_id': 3, 'vote': 'authentic'}]
    rewards = consensus.distribute_rewards(votes, 'fake', 50, NOON)
    assert [r['validator_id'] for r in rewards] == [1, 2]
    assert all(r['amount'] == 25 for r in rewards)
    assert consensus.can_validate(votes, 'active', None, 1, NOON)['reason'] == 'Already validated'
    assert consensus.can_validate(votes, 'completed', None, 9, NOON)['reason'] == 'Validation closed'
    expired = datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert consensus.can_validate(votes, 'active', expired, 9, NOON)['reason'] == 'Validation expired'
    assert consensus.can_validate(votes, 'active', None, 9, NOON) == {'can_validate': True}


# ---- linguistic fingerprints ----

def test_fingerprint_features():
    fp = linguistic.generate_fingerprint('Great item. Great price!', {'writing_time': 60000}, now=NOON)
    assert fp['word_count'] == 4
    assert fp['sentence_count'] == 2
    assert fp['writing_speed'] == 4
    assert fp['hour_of_day'] == 12
    assert fp['day_of_week'] == 1
    assert fp['repetition_score'] == 0.5


def test_authenticity_flags():
    fp = linguistic.generate_fingerprint('Buy now, limited time deal', now=NOON.replace(hour=3))
    result = linguistic.calculate_authenticity_score(fp)
    assert 'SHORT_REVIEW' in result['flags']
    assert 'SPAM_INDICATORS' in result['flags']
    assert 'UNUSUAL_TIME' in result['flags']
    # 100 - 15 short - 15 spam - 5 unusual time
    assert result['authenticity_score'] == 65
    assert result['risk_level'] == 'Medium'
    assert result['analysis']['temporal_patterns'] == 80


def test_purchase_bonus_is_capped():
    fp = linguistic.generate_fingerprint(' '.join(f'word{i}' for i in range(20)), now=NOON)
    result = linguistic.calculate_authenticity_score(
        fp, order_data={'purchase_verified': True, 'order_trust_score': 90})
    assert result['authenticity_score'] == 100
    assert 'Purchase verified - authenticity bonus' in result['reasons']


def test_detect_fake_patterns():
    text = 'This blender crushed ice in seconds and cleanup was easy'
    fingerprints = [linguistic.generate_fingerprint(text, now=NOON) for _ in range(4)]
    patterns = linguistic.detect_fake_patterns(fingerprints)
    assert len(patterns['duplicate_content']) == 6
    assert len(patterns['similar_writing_styles']) == 6
    assert patterns['temporal_clustering'][0]['count'] == 4


# ---- review text metrics ----

def test_review_metrics():
    assert review_metrics.grammar_score('this is fine') == 72
    assert review_metrics.specific_details('Arrived in 3 days, delivery was fast') == 50
    assert review_metrics.sentence_variety('One sentence only.') == 50
    result = review_metrics.analyze_review_text('I love it. The color is exactly as shown and it arrived in 2 days.')
    assert set(result['analysis']) == set(review_metrics.WEIGHTS)
    assert 0 <= result['authenticity_score'] <= 100


# ---- local text analysis ----

def test_text_ai_without_classifier():
    result = text_ai.analyze_text('I love these shoes. They fit my feet perfectly and arrived early.')
    assert result['classifier_results'] is None
    assert 0 <= result['authenticity_score'] <= 100
    assert isinstance(result['is_ai_generated'], bool)
    assert set(result['detailed_analysis']) == {'text_length', 'complexity', 'emotional_tone', 'writing_style'}


def test_ai_indicators_for_impersonal_text():
    text = ('Furthermore, the product offers quality. Moreover, the service is quality. '
            'Additionally, the quality is quality. In addition, overall the quality is quality quality.')
    features = text_ai.extract_linguistic_features(text)
    indicators = text_ai.detect_ai_indicators(text, features)
    assert 'no_personal_pronouns' in indicators
    assert 'too_many_generic_phrases' in indicators
    assert text_ai.is_ai_generated(text, features) is True


def test_count_syllables():
    assert text_ai.count_syllables('') == 0
    assert text_ai.count_syllables('cat') == 1


# ---- image analysis ----

def test_image_without_exif():
    analysis = image.analyze_image(_png(640, 480), 'photo.png', now=NOON)
    assert analysis['metadata']['basic']['format'] == 'png'
    assert analysis['ai_detection']['ai_signatures'] == ['missing_camera_metadata']
    # 100 - 20 signature - 10 missing camera
    assert analysis['authenticity'] == 70


def test_square_ai_resolution_image():
    analysis = image.analyze_image(_png(512, 512), 'render.png', now=NOON)
    assert 'common_ai_resolution' in analysis['ai_detection']['ai_signatures']
    assert 'suspicious_aspect_ratio' in analysis['risk_factors']
    assert analysis['authenticity'] == 45
    assert image.summarize(analysis)['risk_level'] == 'Medium'


def test_undecodable_image_falls_back():
    analysis = image.analyze_image(b'definitely not an image', 'broken.jpg')
    assert analysis['authenticity'] == 50
    assert analysis['risk_factors'] == ['analysis_failed']


# ---- review authentication ----

def test_workflow_decision_routing():
    assert review_auth.workflow_decision(90, 0)['stage'] == 'final_approval'
    assert review_auth.workflow_decision(90, 1)['stage'] == 'expert_validation'
    assert review_auth.workflow_decision(30, 0)['status'] == 'requires_investigation'
    middle = review_auth.workflow_decision(60, 0)
    assert middle['stage'] == 'community_review'
    assert middle['status'] == 'suspicious'
    assert middle['confidence'] == 10


def test_authentication_score():
    steps = [{'step': 'initial_ai_scan', 'score': 70}, {'step': 'behavioral_check', 'score': None}]
    assert review_auth.authentication_score(steps, {}) == 70
    verified = {'purchase_verification': {'verified': True}}
    assert review_auth.authentication_score(steps, verified) == 80
    assert review_auth.authentication_score([], verified) == 0


def test_purchase_verification_heuristics():
    assert review_auth.purchase_verification(400, 12, 0)['verified'] is True
    fresh = review_auth.purchase_verification(1, 0, 0)
    assert fresh['verified'] is False
    assert fresh['confidence'] == 15


# ---- predictions ----

def test_predictions():
    strong = prediction.trust_factors(80, 60, 20, 'Low', None, 0)
    forecast = prediction.predict_trust(strong, 30, 70)
    assert forecast['prediction'] == 'yes'
    assert forecast['confidence'] == 83

    risky = prediction.trust_factors(20, 2, 15, 'High', None, 4)
    fraud = prediction.predict_fraud(risky)
    assert fraud['fraud_score'] == 90
    assert fraud['prediction'] == 'yes'
    assert fraud['confidence'] == 90


def test_suggested_odds():
    assert prediction.suggested_odds(80, 'yes') == {'yes': 1.25, 'no': 5.0}
    assert prediction.suggested_odds(80, 'no') == {'yes': 5.0, 'no': 1.25}
