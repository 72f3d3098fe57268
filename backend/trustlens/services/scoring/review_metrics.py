import re
from typing import Dict

from nltk.tokenize import RegexpTokenizer

WEIGHTS = {
    'sentence_variety': 0.2,
    'emotional_authenticity': 0.25,
    'specific_details': 0.3,
    'vocabulary_complexity': 0.15,
    'grammar_score': 0.1,
}
AI_GENERATED_THRESHOLD = 60

EMOTIONAL_WORDS = frozenset([
    'love', 'hate', 'amazing', 'terrible', 'fantastic', 'awful', 'excited', 'disappointed',
    'thrilled', 'frustrated', 'delighted',
])
GENERIC_WORDS = frozenset(['good', 'bad', 'nice', 'okay', 'fine', 'decent', 'average'])
DETAIL_PATTERNS = (
    re.compile(r'\d+'),
    re.compile(r'color|size|weight|material', re.IGNORECASE),
    re.compile(r'delivery|shipping|package', re.IGNORECASE),
    re.compile(r'compared to|versus|than', re.IGNORECASE),
)

_words = RegexpTokenizer(r'\w+')
# A sentence with its terminal punctuation, if any.
_sentence_with_terminator = re.compile(r'[^.!?]+[.!?]*')


def _sentences(text):
    return [s.strip() for s in re.split(r'[.!?]+', text) if s.strip()]


def sentence_variety(text: str) -> float:
    sentences = _sentences(text)
    if len(sentences) < 2:
        return 50
    lengths = [len(s.split(' ')) for s in sentences]
    avg = sum(lengths) / len(lengths)
    variance = sum((n - avg) ** 2 for n in lengths) / len(lengths)
    return min(100, max(0, variance * 5))


def emotional_authenticity(text: str) -> float:
    words = _words.tokenize(text.lower())
    emotional = sum(1 for w in words if w in EMOTIONAL_WORDS)
    generic = sum(1 for w in words if w in GENERIC_WORDS)
    return min(100, emotional / max(1, generic) * 40 + 50)


def specific_details(text: str) -> float:
    detail = sum(len(p.findall(text)) * 10 for p in DETAIL_PATTERNS)
    return min(100, detail + 30)


def vocabulary_complexity(text: str) -> float:
    words = _words.tokenize(text.lower())
    if not words:
        return 0
    unique_ratio = len(set(words)) / len(words)
    complex_ratio = sum(1 for w in words if len(w) > 6) / len(words)
    return round(unique_ratio * 50 + complex_ratio * 50)


def grammar_score(text: str) -> float:
    """Start at 80; -5 per sentence not starting with a capital, -3 per unterminated sentence."""
    score = 80
    for chunk in _sentence_with_terminator.findall(text):
        sentence = chunk.strip()
        if not sentence or not re.search(r'\w', sentence):
            continue
        if sentence[0].isalpha() and not sentence[0].isupper():
            score -= 5
        if sentence[-1] not in '.!?':
            score -= 3
    return max(0, score)


def analyze_review_text(text: str) -> Dict:
    text = text or ''
    analysis = {
        'sentence_variety': sentence_variety(text),
        'emotional_authenticity': emotional_authenticity(text),
        'specific_details': specific_details(text),
        'vocabulary_complexity': vocabulary_complexity(text),
        'grammar_score': grammar_score(text),
    }
    weighted = sum(analysis[name] * weight for name, weight in WEIGHTS.items())
    return {
        'authenticity_score': round(weighted),
        'analysis': analysis,
        'is_ai_generated': weighted < AI_GENERATED_THRESHOLD,
    }
