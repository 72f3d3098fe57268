"""Local NLP features and authenticity scoring for free text.

``analyze_text`` combines the local features with optional results from the
hosted text classifier (see ``trustlens.services.text_classifier``). When
those results are missing the local formula is used.
"""
import re
from typing import Dict, List, Optional

from nltk.stem import PorterStemmer
from nltk.tokenize import RegexpTokenizer
from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

EMOTIONAL_LEXICON = frozenset([
    'love', 'hate', 'amazing', 'terrible', 'fantastic', 'awful', 'excited', 'disappointed',
    'thrilled', 'frustrated', 'delighted', 'angry', 'happy', 'sad', 'surprised', 'disgusted',
    'fearful',
])
GENERIC_PHRASES = (
    'overall', 'in conclusion', 'to summarize', 'it is worth noting', 'furthermore',
    'moreover', 'additionally', 'in addition',
)
NOUN_HINTS = frozenset([
    'thing', 'product', 'item', 'quality', 'service', 'experience', 'time', 'day', 'week',
    'month', 'year', 'price', 'size', 'color', 'material', 'package', 'delivery', 'seller',
])
VERB_HINTS = frozenset([
    'is', 'are', 'was', 'were', 'have', 'has', 'had', 'do', 'does', 'did', 'can', 'could',
    'will', 'would', 'buy', 'bought', 'use', 'used', 'work', 'works', 'worked', 'arrived',
])
ADJECTIVE_HINTS = frozenset([
    'good', 'bad', 'great', 'excellent', 'poor', 'amazing', 'terrible', 'wonderful', 'awful',
    'nice', 'beautiful', 'ugly', 'fast', 'slow', 'easy', 'hard', 'cheap', 'sturdy',
])
ADVERB_HINTS = frozenset([
    'very', 'really', 'quite', 'extremely', 'highly', 'totally', 'completely', 'absolutely',
    'perfectly', 'exactly',
])
PERSONAL_PRONOUNS = re.compile(r'\b(I|me|my|mine|myself)\b', re.IGNORECASE)

READABILITY_TOO_EASY = 90
READABILITY_TOO_HARD = 30
AI_READABILITY = 95
AI_MIN_LENGTH_FOR_PRONOUNS = 100
AI_MAX_GENERIC_PHRASES = 2
AI_MIN_LEXICAL_DIVERSITY = 0.3
AI_MIN_INDICATORS = 2

_tokenizer = RegexpTokenizer(r"[a-z0-9']+")
_stemmer = PorterStemmer()
_sentiment = SentimentIntensityAnalyzer()


def count_syllables(text: str) -> int:
    text = (text or '').lower()
    if not text:
        return 0
    count = 0
    previous_vowel = False
    for char in text:
        if char in 'aeiouy':
            if not previous_vowel:
                count += 1
            previous_vowel = True
        else:
            previous_vowel = False
    if text.endswith('e') and count > 1:
        count -= 1
    return max(1, count)


def flesch_reading_ease(text: str, sentence_count: int, tokens: List[str]) -> float:
    if not tokens:
        return 0.0
    avg_sentence_length = len(tokens) / max(sentence_count, 1)
    avg_syllables = count_syllables(text) / len(tokens)
    return 206.835 - 1.015 * avg_sentence_length - 84.6 * avg_syllables


def gunning_fog(sentence_count: int, tokens: List[str]) -> float:
    if not tokens:
        return 0.0
    complex_words = [t for t in tokens if count_syllables(t) >= 3]
    avg_sentence_length = len(tokens) / max(sentence_count, 1)
    return 0.4 * (avg_sentence_length + 100 * len(complex_words) / len(tokens))


def lexicon_sentiment(text: str) -> Dict:
    """Summed lexicon valence over tokens, plus VADER's normalised polarity scores."""
    tokens = _tokenizer.tokenize((text or '').lower())
    lexicon = _sentiment.lexicon
    hits = [t for t in tokens if t in lexicon]
    polarity = _sentiment.polarity_scores(text or '')
    return {
        'score': round(sum(lexicon[t] for t in hits), 3),
        'comparative': round(sum(lexicon[t] for t in hits) / len(tokens), 4) if tokens else 0.0,
        'words': hits,
        'compound': polarity['compound'],
        'positive': polarity['pos'],
        'negative': polarity['neg'],
        'neutral': polarity['neu'],
    }


def _named_entities(text: str) -> List[str]:
    # Capitalised words that do not open a sentence.
    entities = []
    for sentence in re.split(r'[.!?]+', text):
        words = sentence.split()
        for word in words[1:]:
            cleaned = word.strip('",;:()\'')
            if cleaned[:1].isupper() and cleaned.lower() not in ('i',) and cleaned.isalpha():
                entities.append(cleaned)
    return entities


def extract_linguistic_features(text: str) -> Dict:
    text = text or ''
    tokens = _tokenizer.tokenize(text.lower())
    sentences = [s for s in re.split(r'[.!?]+', text) if s.strip()]
    unique_words = set(tokens)
    unique_stems = {_stemmer.stem(t) for t in tokens}
    word_count = len(tokens)

    def ratio(hints):
        return sum(1 for t in tokens if t in hints) / word_count if word_count else 0.0

    return {
        'basic_metrics': {
            'word_count': word_count,
            'sentence_count': len(sentences),
            'avg_sentence_length': word_count / max(len(sentences), 1),
            'unique_word_ratio': len(unique_words) / word_count if word_count else 0.0,
        },
        'complexity_metrics': {
            'lexical_diversity': len(unique_words) / word_count if word_count else 0.0,
            'morphological_complexity': len(unique_stems) / len(unique_words) if unique_words else 0.0,
            'readability_score': flesch_reading_ease(text, len(sentences), tokens),
            'gunning_fog': gunning_fog(len(sentences), tokens),
        },
        'syntactic_features': {
            'noun_ratio': ratio(NOUN_HINTS),
            'verb_ratio': ratio(VERB_HINTS),
            'adjective_ratio': ratio(ADJECTIVE_HINTS),
            'adverb_ratio': ratio(ADVERB_HINTS),
        },
        'semantic_features': {
            'named_entities': _named_entities(text),
            'emotional_words': [t for t in tokens if t in EMOTIONAL_LEXICON],
        },
    }


def syntactic_variation(syntactic: Dict) -> float:
    ratios = list(syntactic.values())
    if not ratios:
        return 0.0
    avg = sum(ratios) / len(ratios)
    return (sum((r - avg) ** 2 for r in ratios) / len(ratios)) ** 0.5


def detect_ai_indicators(text: str, features: Dict) -> List[str]:
    text = text or ''
    indicators = []
    readability = features['complexity_metrics']['readability_score']
    if readability > AI_READABILITY:
        indicators.append('too_perfect_readability')
    if not PERSONAL_PRONOUNS.search(text) and len(text) > AI_MIN_LENGTH_FOR_PRONOUNS:
        indicators.append('no_personal_pronouns')
    lowered = text.lower()
    if sum(1 for phrase in GENERIC_PHRASES if phrase in lowered) > AI_MAX_GENERIC_PHRASES:
        indicators.append('too_many_generic_phrases')
    if features['complexity_metrics']['lexical_diversity'] < AI_MIN_LEXICAL_DIVERSITY:
        indicators.append('low_lexical_diversity')
    return indicators


def is_ai_generated(text: str, features: Dict) -> bool:
    return len(detect_ai_indicators(text, features)) >= AI_MIN_INDICATORS


def local_authenticity_score(sentiment: Dict, features: Dict) -> int:
    score = 50.0
    score += min(20, abs(sentiment['score']) * 3)
    score += features['complexity_metrics']['lexical_diversity'] * 30
    score += min(15, len(features['semantic_features']['emotional_words']) * 2)
    return max(0, min(100, round(score)))


def _top_label_score(classifier_output) -> Optional[float]:
    if not classifier_output:
        return None
    best = max(classifier_output, key=lambda item: item.get('score', 0))
    return best.get('score')


def combined_authenticity_score(sentiment_labels, sentiment: Dict, features: Dict) -> int:
    score = 50.0
    top = _top_label_score(sentiment_labels)
    if top is not None:
        score += 20 if top > 0.8 else 10 if top > 0.6 else 5
    score += min(15, abs(sentiment['score']) * 2)
    score += features['complexity_metrics']['lexical_diversity'] * 25
    score += syntactic_variation(features['syntactic_features']) * 20

    readability = features['complexity_metrics']['readability_score']
    if readability > READABILITY_TOO_EASY:
        score -= 15
    elif readability < READABILITY_TOO_HARD:
        score -= 10
    else:
        score += 10

    semantic = features['semantic_features']
    word_count = features['basic_metrics']['word_count']
    if word_count:
        richness = (len(semantic['named_entities']) + len(semantic['emotional_words'])) / word_count
        score += min(15, richness * 100)
    return max(0, min(100, round(score)))


def detailed_analysis(text: str, features: Dict) -> Dict:
    complexity = features['complexity_metrics']
    return {
        'text_length': len(text or ''),
        'complexity': 'appropriate' if complexity['readability_score'] > 60 else 'complex',
        'emotional_tone': 'emotional' if len(features['semantic_features']['emotional_words']) > 2 else 'neutral',
        'writing_style': 'varied' if complexity['lexical_diversity'] > 0.6 else 'repetitive',
    }


def analyze_text(text: str, classifier_results: Optional[Dict] = None) -> Dict:
    """Score ``text``; ``classifier_results`` is {'sentiment': [...], 'toxicity': [...]} or None."""
    sentiment = lexicon_sentiment(text)
    features = extract_linguistic_features(text)
    if classifier_results:
        score = combined_authenticity_score(classifier_results.get('sentiment'), sentiment, features)
    else:
        score = local_authenticity_score(sentiment, features)
    indicators = detect_ai_indicators(text, features)
    return {
        'classifier_results': classifier_results,
        'local_analysis': {'sentiment': sentiment, 'linguistic': features},
        'authenticity_score': score,
        'is_ai_generated': len(indicators) >= AI_MIN_INDICATORS,
        'ai_indicators': indicators,
        'detailed_analysis': detailed_analysis(text, features),
    }
