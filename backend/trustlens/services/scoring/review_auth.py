"""Scoring helpers for the multi-step review authentication workflow."""
import re
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Sequence

STEP_WEIGHTS = {
    'initial_ai_scan': 0.15,
    'linguistic_analysis': 0.20,
    'behavioral_check': 0.15,
    'community_validation': 0.25,
    'expert_review': 0.15,
    'final_verification': 0.10,
}
DEFAULT_STEP_WEIGHT = 0.1
CREDIBILITY_BONUS_CAP = 20

STAGE_PROGRESSION = {
    'automated_screening': 'community_review',
    'community_review': 'expert_validation',
    'expert_validation': 'final_approval',
    'final_approval': 'completed',
}

AI_SCAN_PASS = 60
AI_SCAN_FALLBACK_SCORE = 60
LINGUISTIC_PASS = 65
BEHAVIOR_PASS = 60
BEHAVIOR_SCORES = {'Human': 85, 'Suspicious': 40, 'Bot': 15}
BEHAVIOR_BASE_SCORE = 50

APPROVE_ABOVE = 85
INVESTIGATE_BELOW = 40

GENERIC_REVIEW_PHRASES = ('good product', 'highly recommend', 'great quality', 'fast shipping')

POS_PATTERNS = {
    'nouns': re.compile(r'\b(thing|product|item|quality|service|experience|time|day|week|month|year)\b', re.I),
    'verbs': re.compile(r'\b(is|are|was|were|have|has|had|do|does|did|can|could|will|would|buy|bought|use|used|work|works|worked)\b', re.I),
    'adjectives': re.compile(r'\b(good|bad|great|excellent|poor|amazing|terrible|wonderful|awful|nice|beautiful|ugly|fast|slow|easy|hard)\b', re.I),
    'adverbs': re.compile(r'\b(very|really|quite|extremely|highly|totally|completely|absolutely|perfectly|exactly)\b', re.I),
    'pronouns': re.compile(r'\b(i|you|he|she|it|we|they|me|him|her|us|them|my|your|his|its|our|their)\b', re.I),
    'articles': re.compile(r'\b(a|an|the)\b', re.I),
}
TFIDF_STOPWORDS = frozenset([
    'this', 'that', 'with', 'have', 'will', 'from', 'they', 'know', 'want', 'been', 'good',
    'much', 'some', 'time', 'very', 'when', 'come', 'here', 'just', 'like', 'long', 'make',
    'many', 'over', 'such', 'take', 'than', 'them', 'well', 'were',
])
EMOTIONAL_WORDS = (
    'love', 'hate', 'amazing', 'terrible', 'wonderful', 'awful', 'fantastic', 'horrible',
    'excellent', 'poor', 'great', 'bad', 'perfect', 'disappointing', 'impressed', 'frustrated',
    'satisfied', 'dissatisfied', 'happy', 'angry', 'excited', 'upset', 'pleased', 'annoyed',
)
DETAIL_PATTERNS = (
    re.compile(r'\d+'),
    re.compile(r'color|size|weight|material|texture', re.I),
    re.compile(r'compared|versus|than|better|worse', re.I),
    re.compile(r'because|since|due to|reason', re.I),
)
HELPFUL_PATTERNS = (
    re.compile(r'pros?:', re.I),
    re.compile(r'cons?:', re.I),
    re.compile(r'\d+\s*(star|rating)', re.I),
    re.compile(r'would\s+recommend', re.I),
    re.compile(r'purchased|bought|ordered', re.I),
    re.compile(r'quality|material|size|color', re.I),
)


def _words(content):
    return [w for w in re.split(r'\W+', (content or '').lower()) if w]


def _sentences(content):
    return [s for s in re.split(r'[.!?]+', content or '') if s.strip()]


def _variance(values):
    if not values:
        return 0.0
    avg = sum(values) / len(values)
    return sum((v - avg) ** 2 for v in values) / len(values)


def analyze_linguistic_patterns(content: str) -> Dict:
    words = _words(content)
    sentences = _sentences(content)
    word_count = len(words)
    unique = set(words)
    diversity = len(unique) / word_count if word_count else 0.0

    score = 50
    if 50 <= word_count <= 200:
        score += 15
    elif word_count > 200:
        score += 10
    elif word_count < 20:
        score -= 20

    if diversity > 0.7:
        score += 20
    elif diversity > 0.5:
        score += 10
    elif diversity < 0.3:
        score -= 15

    sentence_variance = _variance([len(_words(s)) for s in sentences])
    if sentence_variance > 10:
        score += 10
    elif sentence_variance < 2:
        score -= 10

    suspicious = []
    if diversity < 0.3:
        suspicious.append({'type': 'low_diversity', 'severity': 'medium', 'confidence': 75,
                           'description': 'Unusually low lexical diversity'})
        score -= 15
    lowered = (content or '').lower()
    if sum(1 for phrase in GENERIC_REVIEW_PHRASES if phrase in lowered) > 2:
        suspicious.append({'type': 'generic_language', 'severity': 'low', 'confidence': 60,
                           'description': 'Contains multiple generic phrases'})
        score -= 10
    if words and max(Counter(words).values()) > word_count * 0.1:
        suspicious.append({'type': 'word_repetition', 'severity': 'medium', 'confidence': 80,
                           'description': 'Excessive word repetition detected'})
        score -= 12

    return {
        'word_count': word_count,
        'sentence_count': len(sentences),
        'avg_words_per_sentence': word_count / max(len(sentences), 1),
        'unique_words': len(unique),
        'lexical_diversity': diversity,
        'sentence_variance': sentence_variance,
        'suspicious_patterns': suspicious,
        'overall_score': max(0, min(100, score)),
    }


def pos_distribution(content: str) -> Dict:
    return {name: len(pattern.findall(content or '')) for name, pattern in POS_PATTERNS.items()}


def tfidf_terms(content: str, limit: int = 5) -> List[str]:
    counts = Counter(w for w in _words(content) if len(w) > 3 and w not in TFIDF_STOPWORDS)
    return [word for word, _ in counts.most_common(limit)]


def count_syllables(word: str) -> int:
    word = word.lower()
    if len(word) <= 3:
        return 1
    count = 0
    previous_vowel = False
    for char in word:
        is_vowel = char in 'aeiouy'
        if is_vowel and not previous_vowel:
            count += 1
        previous_vowel = is_vowel
    if word.endswith('e'):
        count -= 1
    return max(1, count)


def readability_score(content: str) -> float:
    sentences = _sentences(content)
    words = _words(content)
    if not sentences or not words:
        return 50
    syllables = sum(count_syllables(w) for w in words)
    score = 206.835 - 1.015 * (len(words) / len(sentences)) - 84.6 * (syllables / len(words))
    return max(0, min(100, score))


def emotional_words(content: str) -> List[str]:
    words = set(_words(content))
    return [w for w in EMOTIONAL_WORDS if w in words]


def review_consistency(ratings: Sequence[float]) -> float:
    if len(ratings) < 2:
        return 50
    return max(0, min(100, 100 - _variance(ratings) * 20))


def detail_level(content: str) -> float:
    score = min(100, len(_words(content)) * 2)
    score += sum(len(p.findall(content or '')) * 5 for p in DETAIL_PATTERNS)
    return min(100, score)


def originality(content: str) -> float:
    phrases = [p.strip() for p in _sentences((content or '').lower())]
    if not phrases:
        return 100
    return min(100, len(set(phrases)) / len(phrases) * 100)


def purchase_verification(account_age_days: float, review_count: int, reviews_last_day: int) -> Dict:
    score = 50
    if account_age_days > 365:
        score += 25
    elif account_age_days > 90:
        score += 15
    elif account_age_days < 7:
        score -= 20
    if review_count > 10:
        score += 15
    elif review_count < 2:
        score -= 15
    if reviews_last_day > 5:
        score -= 30
    verified = score > 60
    return {
        'verified': verified,
        'confidence': min(95, max(5, score)),
        'method': 'behavioral_analysis' if verified else 'insufficient_evidence',
        'details': {
            'account_age': round(account_age_days),
            'review_count': review_count,
            'recent_activity': reviews_last_day,
        },
    }


def seasonality_score(review_times: Sequence[datetime]) -> float:
    months = [0] * 12
    for stamp in review_times:
        months[stamp.month - 1] += 1
    total = sum(months)
    if total == 0:
        return 50
    expected = total / 12
    variance = sum((count - expected) ** 2 for count in months) / 12
    return max(0, min(100, 100 - variance * 2))


def temporal_patterns(review_time: datetime, user_review_times: Sequence[datetime]) -> Dict:
    window = timedelta(hours=2)
    burst = [t for t in user_review_times if abs(t - review_time) < window]
    flags = []
    pattern = 'normal'
    if len(burst) > 3:
        pattern = 'burst_reviewing'
        flags.append('multiple_reviews_short_timeframe')
    if 2 <= review_time.hour <= 5:
        flags.append('unusual_hours')
    return {
        'time_to_review': 24,
        'pattern': pattern,
        'seasonality_score': seasonality_score(user_review_times),
        'suspicious_flags': flags,
        'review_hour': review_time.hour,
        'burst_count': len(burst),
    }


def helpfulness_score(content: str, user_ratings: Sequence[float]) -> int:
    score = 50
    word_count = len(_words(content))
    if word_count > 100:
        score += 20
    elif word_count > 50:
        score += 10
    elif word_count < 10:
        score -= 20
    score += sum(5 for p in HELPFUL_PATTERNS if p.search(content or ''))
    if user_ratings:
        avg = sum(user_ratings) / len(user_ratings)
        if avg > 4.5 or avg < 1.5:
            score -= 10
        if _variance(user_ratings) > 1.5:
            score += 10
    return max(0, min(100, round(score)))


def behavior_step_score(classification: str) -> int:
    return BEHAVIOR_SCORES.get(classification, BEHAVIOR_BASE_SCORE)


def credibility_bonus(credibility: Dict) -> float:
    bonus = 0
    if credibility.get('purchase_verification', {}).get('verified'):
        bonus += 10
    history = credibility.get('reviewer_history', {})
    if history.get('total_reviews', 0) > 10 and history.get('review_consistency', 0) > 70:
        bonus += 5
    quality = credibility.get('content_quality', {})
    if quality.get('detail_level', 0) > 80 and quality.get('originality_score', 0) > 70:
        bonus += 5
    return min(CREDIBILITY_BONUS_CAP, bonus)


def authentication_score(steps: Sequence[Dict], credibility: Dict) -> float:
    weighted_sum = 0.0
    total_weight = 0.0
    for step in steps:
        if step.get('score') is None:
            continue
        weight = STEP_WEIGHTS.get(step['step'], DEFAULT_STEP_WEIGHT)
        weighted_sum += step['score'] * weight
        total_weight += weight
    if total_weight == 0:
        return 0
    return round(min(100, weighted_sum / total_weight + credibility_bonus(credibility or {})), 2)


def workflow_decision(score: float, critical_indicators: int) -> Dict:
    """Route an authentication to its next stage based on score and critical indicators."""
    if score > APPROVE_ABOVE and critical_indicators == 0:
        return {
            'stage': 'final_approval',
            'priority': None,
            'status': 'authentic',
            'confidence': score,
            'reasoning': ['High authentication score', 'No critical fraud indicators'],
        }
    if score < INVESTIGATE_BELOW or critical_indicators > 0:
        return {
            'stage': 'expert_validation',
            'priority': 'high',
            'status': 'requires_investigation',
            'confidence': round(100 - score, 2),
            'reasoning': ['Low authentication score', 'Critical fraud indicators detected'],
        }
    return {
        'stage': 'community_review',
        'priority': None,
        'status': 'suspicious',
        'confidence': round(abs(50 - score), 2),
        'reasoning': ['Moderate authentication score', 'Requires community validation'],
    }
