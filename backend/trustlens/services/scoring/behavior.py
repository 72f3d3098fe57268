"""Keystroke and pointer behaviour heuristics."""
from statistics import fmean, pvariance
from typing import Dict, List, Optional, Sequence

MIN_TYPING_SAMPLES = 5
MIN_MOUSE_POINTS = 10

BOT_THRESHOLD = 0.7
SUSPICIOUS_THRESHOLD = 0.4
LOW_VARIANCE = 25

# Realtime classification labels: (type, confidence, risk)
REALTIME_BOT = ('Bot', 95, 'High')
REALTIME_SUSPICIOUS = ('Suspicious', 78, 'Medium')
REALTIME_HUMAN = ('Human', 85, 'Low')


def typing_statistics(data: Sequence[float]) -> Dict:
    avg = fmean(data)
    variance = pvariance(data)
    std = variance ** 0.5
    n = len(data)
    if std == 0:
        # A constant series has no shape; treat it as perfectly symmetric.
        skewness = 0.0
        kurtosis = 0.0
    else:
        skewness = sum(((v - avg) / std) ** 3 for v in data) / n
        kurtosis = sum(((v - avg) / std) ** 4 for v in data) / n - 3
    return {
        'mean': avg,
        'variance': variance,
        'std_dev': std,
        'skewness': skewness,
        'kurtosis': kurtosis,
    }


def _diffs(data):
    return [data[i] - data[i - 1] for i in range(1, len(data))]


def typing_consistency_ratio(data: Sequence[float]) -> float:
    if len(data) < 3:
        return 0.0
    avg_difference = fmean([abs(d) for d in _diffs(data)])
    return 1 - min(1.0, avg_difference / 50)


def has_natural_rhythm(data: Sequence[float]) -> bool:
    if len(data) < 5:
        return False
    return pvariance(_diffs(data)) > 10


def has_acceleration(data: Sequence[float]) -> bool:
    if len(data) < 3:
        return False
    changes = sum(1 for i in range(2, len(data))
                  if abs(data[i] - 2 * data[i - 1] + data[i - 2]) > 5)
    return changes / (len(data) - 2) > 0.3


def has_pauses(data: Sequence[float]) -> bool:
    if not data:
        return False
    threshold = fmean(data) * 1.5
    return any(value < threshold for value in data)


def typing_patterns(data: Sequence[float]) -> Dict:
    return {
        'consistency': typing_consistency_ratio(data),
        'rhythm': has_natural_rhythm(data),
        'acceleration': has_acceleration(data),
        'pauses': has_pauses(data),
    }


def mouse_typing_correlation(typing: Sequence[float], mouse: Sequence) -> Optional[Dict]:
    """Share of samples whose typing and pointer speeds are within 20 of each other."""
    speeds = []
    for sample in mouse:
        if isinstance(sample, dict):
            sample = sample.get('speed')
        if not isinstance(sample, (int, float)):
            return None
        speeds.append(sample)
    if not speeds or len(speeds) != len(typing):
        return None
    close = sum(1 for t, m in zip(typing, speeds) if abs(t - m) < 20)
    score = close / len(typing)
    return {'correlation_score': score, 'is_natural_correlation': score > 0.3}


def classify_typing_behavior(stats: Dict, patterns: Dict) -> Dict:
    bot_score = 0.0
    risk_factors = []
    if stats['variance'] == 0:
        bot_score += 0.9
        risk_factors.append('perfect_consistency')
    elif stats['variance'] < LOW_VARIANCE:
        bot_score += 0.6
        risk_factors.append('low_variance')
    if not patterns['rhythm']:
        bot_score += 0.5
        risk_factors.append('no_natural_rhythm')
    if not patterns['acceleration']:
        bot_score += 0.3
        risk_factors.append('uniform_acceleration')
    if not patterns['pauses']:
        bot_score += 0.4
        risk_factors.append('no_thinking_pauses')
    if abs(stats['skewness']) < 0.1:
        bot_score += 0.3
        risk_factors.append('perfect_distribution')

    if bot_score > BOT_THRESHOLD:
        label = 'Bot'
    elif bot_score > SUSPICIOUS_THRESHOLD:
        label = 'Suspicious'
    else:
        label = 'Human'
    return {
        'type': label,
        'confidence': min(95, round(bot_score * 100)),
        'bot_score': round(bot_score, 2),
        'risk_factors': risk_factors,
    }


def analyze_typing_behavior(typing_data: Optional[Sequence[float]], mouse_data=None) -> Dict:
    data = [float(v) for v in (typing_data or [])]
    if len(data) < MIN_TYPING_SAMPLES:
        return {
            'classification': 'insufficient_data',
            'confidence': 0,
            'analysis': 'Need more typing samples',
        }
    stats = typing_statistics(data)
    patterns = typing_patterns(data)
    correlation = mouse_typing_correlation(data, mouse_data) if mouse_data else None
    result = classify_typing_behavior(stats, patterns)
    return {
        'classification': result['type'],
        'confidence': result['confidence'],
        'analysis': {
            'statistics': stats,
            'patterns': patterns,
            'mouse_correlation': correlation,
            'risk_factors': result['risk_factors'],
        },
    }


def realtime_consistency(cadence: Sequence[float]) -> float:
    variance = pvariance(cadence) if len(cadence) >= 2 else 0
    return 1.0 if variance == 0 else max(0.0, 1 - variance / 1000)


def classify_typing_pattern(cadence: Optional[Sequence[float]]) -> Dict:
    data = [float(v) for v in (cadence or [])]
    if len(data) < 2:
        return {'type': 'insufficient_data', 'confidence': 0, 'risk': 'Low'}
    variance = pvariance(data)
    if variance == 0:
        label, confidence, risk = REALTIME_BOT
    elif variance < LOW_VARIANCE:
        label, confidence, risk = REALTIME_SUSPICIOUS
    else:
        label, confidence, risk = REALTIME_HUMAN
    return {'type': label, 'confidence': confidence, 'risk': risk}


def realtime_typing_analysis(cadence: Optional[Sequence[float]]) -> Dict:
    data = [float(v) for v in (cadence or [])]
    return {
        'variance': pvariance(data) if len(data) >= 2 else 0,
        'consistency': realtime_consistency(data),
        'classification': classify_typing_pattern(data),
    }


def analyze_mouse_movements(movements: Optional[List[Dict]]) -> Dict:
    points = movements or []
    if len(points) < MIN_MOUSE_POINTS:
        return {'is_bot': False, 'confidence': 0, 'reason': 'Insufficient data'}
    straight = 0
    for i in range(2, len(points)):
        dx1 = points[i - 1]['x'] - points[i - 2]['x']
        dy1 = points[i - 1]['y'] - points[i - 2]['y']
        dx2 = points[i]['x'] - points[i - 1]['x']
        dy2 = points[i]['y'] - points[i - 1]['y']
        if dx1 and dy1 and dx2 and dy2 and abs(dy1 / dx1 - dy2 / dx2) < 0.01:
            straight += 1
    ratio = straight / (len(points) - 2)
    is_bot = ratio > BOT_THRESHOLD
    return {
        'is_bot': is_bot,
        'confidence': round(ratio * 100),
        'straight_line_ratio': ratio,
        'reason': 'Too many perfect straight lines' if is_bot else 'Natural mouse movement',
    }
