"""Client for the optional hosted text-classification models.

Every failure path returns None so callers fall back to local analysis.
"""
from typing import Dict, List, Optional

import requests
from flask import current_app

from trustlens.services.scoring.text_ai import analyze_text


def _flatten(payload) -> Optional[List[Dict]]:
    # The inference API returns either [{...}] or [[{...}]]
    if isinstance(payload, list) and payload and isinstance(payload[0], list):
        payload = payload[0]
    if not isinstance(payload, list) or not all(isinstance(i, dict) and 'score' in i for i in payload):
        return None
    return payload


def classify(model: str, text: str) -> Optional[List[Dict]]:
    config = current_app.config
    url = f"{config['TEXT_CLASSIFIER_URL'].rstrip('/')}/{model}"
    headers = {'Content-Type': 'application/json'}
    if config.get('HF_API_TOKEN'):
        headers['Authorization'] = f"Bearer {config['HF_API_TOKEN']}"
    try:
        response = requests.post(url, json={'inputs': text}, headers=headers,
                                 timeout=config.get('TEXT_CLASSIFIER_TIMEOUT_SEC', 10))
        response.raise_for_status()
        return _flatten(response.json())
    except requests.exceptions.Timeout:
        current_app.logger.warning(f"[classifier] {model} timed out")
    except requests.exceptions.ConnectionError:
        current_app.logger.warning(f"[classifier] cannot reach {url}")
    except requests.exceptions.HTTPError as exc:
        current_app.logger.warning(f"[classifier] {model} returned {exc.response.status_code if exc.response is not None else '?'}")
    except ValueError:
        current_app.logger.warning(f"[classifier] {model} returned a non-JSON body")
    return None


def fetch_classifier_results(text: str) -> Optional[Dict]:
    """Sentiment and toxicity labels for ``text`` or None when unavailable."""
    config = current_app.config
    if not config.get('TEXT_CLASSIFIER_ENABLED'):
        return None
    sentiment = classify(config['SENTIMENT_MODEL'], text)
    toxicity = classify(config['TOXICITY_MODEL'], text)
    if sentiment is None or toxicity is None:
        return None
    return {'sentiment': sentiment, 'toxicity': toxicity}


def analyze_review_text(text: str) -> Dict:
    return analyze_text(text, fetch_classifier_results(text))
