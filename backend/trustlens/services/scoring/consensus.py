"""Trust-weighted community consensus.

``weighted_majority`` is the core: a deterministic reduction over
``(weight, choice)`` pairs. The rest maps validator votes onto it.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

MIN_WEIGHT = 0.1
MAX_WEIGHT = 3.0
TRUST_MULTIPLIER_RANGE = (0.5, 2.0)
EVIDENCE_BONUS_PER_ITEM = 0.1
EVIDENCE_BONUS_CAP = 0.5
COMPLETION_SHARE = 60

VOTE_SCORES = {
    'authentic': 100,
    'trustworthy': 100,
    'suspicious': 30,
    'fake': 0,
    'untrustworthy': 0,
}
NEUTRAL_VOTE_SCORE = 50
VALID_VOTES = ('authentic', 'fake', 'suspicious', 'trustworthy', 'untrustworthy')


def validator_weight(trust_score: float, confidence: float, evidence_count: int = 0) -> float:
    low, high = TRUST_MULTIPLIER_RANGE
    weight = max(low, min(high, (trust_score or 0) / 50))
    weight *= (confidence or 0) / 100
    if evidence_count > 0:
        weight += min(EVIDENCE_BONUS_CAP, evidence_count * EVIDENCE_BONUS_PER_ITEM)
    return max(MIN_WEIGHT, min(MAX_WEIGHT, weight))


def vote_score(vote: str) -> int:
    return VOTE_SCORES.get(vote, NEUTRAL_VOTE_SCORE)


def weighted_majority(pairs: Iterable[Tuple[float, str]]) -> Tuple[str, float, float]:
    """Return (winner, winner_weight, total_weight); first-seen choice wins ties."""
    totals: Dict[str, float] = {}
    total = 0.0
    for weight, choice in pairs:
        totals[choice] = totals.get(choice, 0.0) + weight
        total += weight
    winner, best = 'inconclusive', 0.0
    for choice, weight in totals.items():
        if weight > best:
            winner, best = choice, weight
    return winner, best, total


def vote_weight(vote: Dict) -> float:
    return validator_weight(vote.get('validator_trust_score', 50), vote.get('confidence', 0),
                            len(vote.get('evidence') or []))


def compute_consensus(votes: Sequence[Dict], minimum_validators: int = 5) -> Optional[Dict]:
    """Consensus over stored validator entries, or None when nobody has voted."""
    if not votes:
        return None
    pairs = [(vote_weight(v), v['vote']) for v in votes]
    majority, majority_weight, total_weight = weighted_majority(pairs)
    weighted_sum = sum(weight * vote_score(choice) for weight, choice in pairs)
    share = majority_weight / total_weight * 100 if total_weight > 0 else 0
    overall = round(weighted_sum / total_weight) if total_weight > 0 else 0
    return {
        'overall_score': overall,
        'majority_vote': majority,
        'confidence': round(share),
        'total_validators': len(votes),
        'weighted_score': overall,
        'completed': len(votes) >= minimum_validators and share >= COMPLETION_SHARE,
    }


def distribute_rewards(votes: Sequence[Dict], majority_vote: str, reward_pool: float,
                       now: datetime) -> List[Dict]:
    if not reward_pool:
        return []
    winners = [v for v in votes if v['vote'] == majority_vote]
    if not winners:
        return []
    share = reward_pool / len(winners)
    return [{
        'validator_id': v['validator_id'],
        'amount': share,
        'reason': 'Correct consensus vote',
        'timestamp': now.isoformat(),
    } for v in winners]


def can_validate(votes: Sequence[Dict], status: str, expires_at: Optional[datetime], user_id,
                 now: datetime) -> Dict:
    if any(str(v.get('validator_id')) == str(user_id) for v in votes):
        return {'can_validate': False, 'reason': 'Already validated'}
    if status != 'active':
        return {'can_validate': False, 'reason': 'Validation closed'}
    if expires_at is not None and now > expires_at:
        return {'can_validate': False, 'reason': 'Validation expired'}
    return {'can_validate': True}
