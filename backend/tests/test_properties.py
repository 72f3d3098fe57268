from datetime import datetime, timezone

from hypothesis import given, settings, strategies as st

from trustlens.services.scoring import consensus, linguistic, trust

ages = st.integers(min_value=0, max_value=3650)
transactions = st.integers(min_value=0, max_value=10000)
cadences = st.one_of(st.none(), st.lists(st.floats(min_value=0, max_value=2000), max_size=40))
risk_levels = st.sampled_from(['Low', 'Medium', 'High'])
moments = st.datetimes(min_value=datetime(2000, 1, 1), max_value=datetime(2100, 1, 1),
                       timezones=st.just(timezone.utc))
votes = st.fixed_dictionaries({
    'vote': st.sampled_from(consensus.VALID_VOTES),
    'confidence': st.integers(min_value=1, max_value=100),
    'validator_trust_score': st.floats(min_value=0, max_value=100),
    'evidence': st.lists(st.text(max_size=5), max_size=8),
})


@given(ages, transactions, cadences, risk_levels, st.one_of(st.none(), st.integers(min_value=0, max_value=50)))
def test_trust_score_is_bounded(age, tx, cadence, risk, sharers):
    score = trust.calculate_trust_score(age, tx, cadence, risk, sharers)
    assert 0 <= score <= 100


@given(ages, transactions, cadences, risk_levels)
def test_sole_account_on_ip_is_never_penalised(age, tx, cadence, risk):
    without_ip = trust.calculate_trust_score(age, tx, cadence, risk, None)
    assert trust.calculate_trust_score(age, tx, cadence, risk, 1) == min(100, without_ip + 10)


@given(ages, transactions, cadences, st.sampled_from(['Medium', 'High']), st.integers(min_value=3, max_value=500))
def test_shared_ip_always_costs_fifteen(age, tx, cadence, risk, sharers):
    without_ip = trust.calculate_trust_score(age, tx, cadence, risk, None)
    assert trust.calculate_trust_score(age, tx, cadence, risk, sharers) == without_ip - 15


@given(st.floats(min_value=0, max_value=100), st.floats(min_value=0, max_value=100),
       st.integers(min_value=0, max_value=100), st.integers(min_value=0, max_value=100),
       st.integers(min_value=0, max_value=20))
def test_validator_weight_is_monotone(t1, t2, c1, c2, evidence):
    low_t, high_t = sorted((t1, t2))
    low_c, high_c = sorted((c1, c2))
    assert consensus.validator_weight(low_t, low_c, evidence) <= consensus.validator_weight(high_t, low_c, evidence)
    assert consensus.validator_weight(low_t, low_c, evidence) <= consensus.validator_weight(low_t, high_c, evidence)
    assert consensus.MIN_WEIGHT <= consensus.validator_weight(high_t, high_c, evidence) <= consensus.MAX_WEIGHT


@given(st.lists(votes, min_size=1, max_size=4))
def test_fewer_than_minimum_validators_never_complete(ballots):
    result = consensus.compute_consensus(ballots, 5)
    assert result['completed'] is False
    assert result['total_validators'] == len(ballots)
    assert 0 <= result['overall_score'] <= 100


@given(st.sampled_from(consensus.VALID_VOTES), st.lists(votes, min_size=5, max_size=12))
def test_unanimous_vote_completes(choice, ballots):
    ballots = [dict(b, vote=choice) for b in ballots]
    result = consensus.compute_consensus(ballots, 5)
    assert result['majority_vote'] == choice
    assert result['confidence'] == 100
    assert result['completed'] is True


@settings(max_examples=50)
@given(st.text(max_size=300), moments, st.fixed_dictionaries({
    'writing_time': st.integers(min_value=0, max_value=600000),
    'revisions_count': st.integers(min_value=0, max_value=20),
    'session_duration': st.integers(min_value=0, max_value=600000),
}))
def test_fingerprint_and_assessment_are_deterministic(text, now, behavior):
    first = linguistic.generate_fingerprint(text, behavior, now=now)
    second = linguistic.generate_fingerprint(text, behavior, now=now)
    assert first == second
    assessment = linguistic.calculate_authenticity_score(first)
    assert assessment == linguistic.calculate_authenticity_score(second)
    assert 0 <= assessment['authenticity_score'] <= 100
    assert len(assessment['flags']) == len(set(assessment['flags']))
