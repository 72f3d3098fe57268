"""Linguistic fingerprints for review text.

A fingerprint is a flat dict of text statistics plus the writer's
behavioural metrics. Everything here is deterministic for a given text,
behaviour payload and ``now``.
"""
import hashlib
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional

COMMON_WORDS = frozenset([
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by',
    'is', 'are', 'was', 'were', 'be', 'been', 'have', 'has', 'had', 'do', 'does', 'did', 'will',
    'would', 'could', 'should', 'may', 'might', 'can', 'this', 'that', 'these', 'those', 'i',
    'you', 'he', 'she', 'it', 'we', 'they', 'me', 'him', 'her', 'us', 'them',
])
POSITIVE_WORDS = frozenset([
    'good', 'great', 'excellent', 'amazing', 'wonderful', 'fantastic', 'awesome', 'love',
    'perfect', 'best', 'nice', 'beautiful', 'quality', 'recommend', 'happy', 'satisfied',
    'pleased', 'impressed',
])
NEGATIVE_WORDS = frozenset([
    'bad', 'terrible', 'awful', 'horrible', 'worst', 'hate', 'disappointed', 'poor', 'cheap',
    'fake', 'broken', 'useless', 'waste', 'regret', 'angry', 'frustrated',
])
SPAM_PHRASES = (
    'buy now', 'click here', 'limited time', 'special offer', 'guaranteed', 'free shipping',
    'discount', 'sale', 'promotion',
)

# Penalties applied by calculate_authenticity_score, keyed by flag.
PENALTIES = {
    'SHORT_REVIEW': 15,
    'LOW_VOCABULARY': 10,
    'HIGH_REPETITION': 8,
    'EXTREME_SENTIMENT': 5,
    'SPAM_INDICATORS': 15,
    'FAST_TYPING': 12,
    'NO_REVISIONS': 8,
    'RUSHED_WRITING': 10,
    'UNUSUAL_TIME': 5,
    'LENGTH_ANOMALY': 8,
    'HIGH_ACTIVITY': 7,
}
FLAG_REASONS = {
    'SHORT_REVIEW': 'Review too short (less than 10 words)',
    'LOW_VOCABULARY': 'Limited vocabulary diversity',
    'HIGH_REPETITION': 'Excessive word repetition detected',
    'EXTREME_SENTIMENT': 'Extremely polarized sentiment',
    'SPAM_INDICATORS': 'Contains promotional language',
    'FAST_TYPING': 'Unusually fast typing speed',
    'NO_REVISIONS': 'No text revisions for lengthy review',
    'RUSHED_WRITING': 'Review written too quickly',
    'UNUSUAL_TIME': 'Review submitted at unusual hours',
    'LENGTH_ANOMALY': 'Review length significantly different from user pattern',
    'HIGH_ACTIVITY': 'Unusually high review activity',
}
FLAG_CATEGORIES = {
    'text_quality': (('SHORT_REVIEW', 'LOW_VOCABULARY', 'HIGH_REPETITION'), 10),
    'sentiment_analysis': (('EXTREME_SENTIMENT', 'SPAM_INDICATORS'), 10),
    'behavioral_consistency': (('FAST_TYPING', 'NO_REVISIONS', 'RUSHED_WRITING'), 10),
    'temporal_patterns': (('UNUSUAL_TIME',), 20),
    'user_consistency': (('LENGTH_ANOMALY', 'HIGH_ACTIVITY'), 15),
}

COMPARED_FEATURES = (
    'vocabulary_richness', 'common_words_ratio', 'sentiment_score', 'punctuation_density',
    'capitalization_ratio', 'avg_words_per_sentence', 'avg_chars_per_word', 'writing_speed',
)
SIMILAR_STYLE_THRESHOLD = 0.85
CLUSTER_WINDOW_MS = 30 * 60 * 1000
CLUSTER_MIN_SIZE = 4

_SENTENCE_SPLIT = re.compile(r'[.!?]+')
_PUNCTUATION = re.compile(r'[.,!?;:]')
_CAPITALS = re.compile(r'[A-Z]')


def _ratio(numerator, denominator):
    return numerator / max(denominator, 1)


def generate_fingerprint(review_text: str, behavior: Optional[Dict] = None,
                         now: Optional[datetime] = None) -> Dict:
    behavior = behavior or {}
    now = now or datetime.now(timezone.utc)
    raw = review_text or ''
    text = raw.lower().strip()
    words = text.split()
    sentences = [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]
    frequency = Counter(words)

    writing_time = behavior.get('writing_time') or 0
    writing_speed = len(words) / (writing_time / 1000 / 60) if writing_time else 0

    timestamp = int(now.timestamp() * 1000)
    text_hash = hashlib.md5(text.encode('utf-8')).hexdigest()
    fingerprint_id = hashlib.sha1(f'{text_hash}:{timestamp}'.encode('utf-8')).hexdigest()[:24]

    return {
        'character_count': len(text),
        'word_count': len(words),
        'sentence_count': len(sentences),
        'avg_words_per_sentence': _ratio(len(words), len(sentences)),
        'avg_chars_per_word': _ratio(len(re.sub(r'\s', '', text)), len(words)),
        'vocabulary_richness': _ratio(len(frequency), len(words)),
        'common_words_ratio': _ratio(sum(1 for w in words if w in COMMON_WORDS), len(words)),
        'sentiment_score': _ratio(
            sum(1 for w in words if w in POSITIVE_WORDS) - sum(1 for w in words if w in NEGATIVE_WORDS),
            len(words)),
        'punctuation_density': _ratio(len(_PUNCTUATION.findall(text)), len(text)),
        'capitalization_ratio': _ratio(len(_CAPITALS.findall(raw)), len(raw)),
        'repetition_score': _ratio(max(frequency.values()) if frequency else 0, len(words)),
        'spam_indicators': sum(1 for phrase in SPAM_PHRASES if phrase in text),
        'writing_speed': writing_speed,
        'revisions_count': behavior.get('revisions_count') or 0,
        'session_duration': behavior.get('session_duration') or 0,
        'image_count': behavior.get('image_count') or 0,
        'timestamp': timestamp,
        # Monday == 0
        'day_of_week': now.weekday(),
        'hour_of_day': now.hour,
        'text_hash': text_hash,
        'fingerprint_id': fingerprint_id,
    }


def calculate_authenticity_score(fingerprint: Dict, user_history: Optional[Dict] = None,
                                 order_data: Optional[Dict] = None) -> Dict:
    user_history = user_history or {}
    order_data = order_data or {}
    flags = []
    word_count = fingerprint.get('word_count', 0)

    if word_count < 10:
        flags.append('SHORT_REVIEW')
    if fingerprint.get('vocabulary_richness', 0) < 0.3:
        flags.append('LOW_VOCABULARY')
    if fingerprint.get('repetition_score', 0) > 0.3:
        flags.append('HIGH_REPETITION')
    if abs(fingerprint.get('sentiment_score', 0)) > 0.5:
        flags.append('EXTREME_SENTIMENT')
    if fingerprint.get('spam_indicators', 0) > 0:
        flags.append('SPAM_INDICATORS')
    if fingerprint.get('writing_speed', 0) > 100:
        flags.append('FAST_TYPING')
    if fingerprint.get('revisions_count', 0) < 2 and word_count > 50:
        flags.append('NO_REVISIONS')
    if fingerprint.get('session_duration', 0) < 30000 and word_count > 30:
        flags.append('RUSHED_WRITING')
    if 2 <= fingerprint.get('hour_of_day', 12) <= 5:
        flags.append('UNUSUAL_TIME')

    avg_length = user_history.get('avg_review_length')
    if user_history.get('total_reviews', 0) > 10 and avg_length:
        if abs(word_count - avg_length) / avg_length > 2:
            flags.append('LENGTH_ANOMALY')
    if user_history.get('recent_review_count', 0) > 5:
        flags.append('HIGH_ACTIVITY')

    score = 100 - sum(PENALTIES[f] for f in flags)
    reasons = [FLAG_REASONS[f] for f in flags]
    if order_data.get('purchase_verified'):
        score += 10
        reasons.append('Purchase verified - authenticity bonus')
    if order_data.get('order_trust_score', 0) > 70:
        score += 5
        reasons.append('High order trust score')

    score = max(0, min(100, score))
    if score < 40:
        risk_level = 'High'
    elif score < 70:
        risk_level = 'Medium'
    else:
        risk_level = 'Low'

    analysis = {}
    for category, (members, penalty) in FLAG_CATEGORIES.items():
        hits = sum(1 for f in flags if f in members)
        analysis[category] = max(0, 100 - hits * penalty)

    return {
        'authenticity_score': round(score),
        'risk_level': risk_level,
        'flags': flags,
        'reasons': reasons,
        'analysis': analysis,
    }


def compare_fingerprints(first: Dict, second: Dict) -> float:
    """Mean per-feature similarity in [0, 1] across the shared numeric features."""
    total = 0.0
    compared = 0
    for feature in COMPARED_FEATURES:
        if feature not in first or feature not in second:
            continue
        a, b = first[feature], second[feature]
        largest = max(a, b, 0.01)
        total += max(0.0, 1 - abs(a - b) / largest)
        compared += 1
    return total / compared if compared else 0.0


def detect_fake_patterns(fingerprints: List[Dict]) -> Dict:
    patterns = {
        'duplicate_content': [],
        'similar_writing_styles': [],
        'temporal_clustering': [],
        'behavioral_anomalies': [],
    }
    for i, first in enumerate(fingerprints):
        for second in fingerprints[i + 1:]:
            similarity = compare_fingerprints(first, second)
            if similarity > SIMILAR_STYLE_THRESHOLD:
                patterns['similar_writing_styles'].append({
                    'fingerprint1': first.get('fingerprint_id'),
                    'fingerprint2': second.get('fingerprint_id'),
                    'similarity': round(similarity, 4),
                })
            if first.get('text_hash') and first.get('text_hash') == second.get('text_hash'):
                patterns['duplicate_content'].append({
                    'fingerprint1': first.get('fingerprint_id'),
                    'fingerprint2': second.get('fingerprint_id'),
                })

    slots: Dict[int, List[str]] = {}
    for fp in fingerprints:
        slot = int(fp.get('timestamp', 0)) // CLUSTER_WINDOW_MS
        slots.setdefault(slot, []).append(fp.get('fingerprint_id'))
    for slot, members in slots.items():
        if len(members) >= CLUSTER_MIN_SIZE:
            patterns['temporal_clustering'].append({
                'time_slot': slot,
                'count': len(members),
                'fingerprints': members,
            })
    return patterns
