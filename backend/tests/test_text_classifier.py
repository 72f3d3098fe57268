import requests

from trustlens.services import text_classifier

from conftest import REVIEW_TEXT


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(response=self)

    def json(self):
        return self.payload


def test_disabled_classifier_falls_back_to_local(flask_app, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError('classifier should not be called')
    monkeypatch.setattr(text_classifier.requests, 'post', fail)
    analysis = text_classifier.analyze_review_text(REVIEW_TEXT)
    assert analysis['classifier_results'] is None
    assert 0 <= analysis['authenticity_score'] <= 100


def test_unreachable_classifier_returns_none(flask_app, monkeypatch):
    def refuse(*args, **kwargs):
        raise requests.exceptions.ConnectionError('refused')
    monkeypatch.setattr(text_classifier.requests, 'post', refuse)
    assert text_classifier.classify('some/model', REVIEW_TEXT) is None


def test_http_error_and_bad_payload(flask_app, monkeypatch):
    monkeypatch.setattr(text_classifier.requests, 'post', lambda *a, **k: FakeResponse({}, status=503))
    assert text_classifier.classify('some/model', REVIEW_TEXT) is None
    monkeypatch.setattr(text_classifier.requests, 'post', lambda *a, **k: FakeResponse({'error': 'loading'}))
    assert text_classifier.classify('some/model', REVIEW_TEXT) is None


def test_enabled_classifier_results(flask_app, monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append((url, headers))
        return FakeResponse([[{'label': 'positive', 'score': 0.9}]])
    monkeypatch.setattr(text_classifier.requests, 'post', fake_post)
    flask_app.config['TEXT_CLASSIFIER_ENABLED'] = True
    flask_app.config['HF_API_TOKEN'] = 'hf_test'

    analysis = text_classifier.analyze_review_text(REVIEW_TEXT)
    results = analysis['classifier_results']
    assert results['sentiment'] == [{'label': 'positive', 'score': 0.9}]
    assert results['toxicity'] == [{'label': 'positive', 'score': 0.9}]
    assert len(calls) == 2
    assert calls[0][0].endswith(flask_app.config['SENTIMENT_MODEL'])
    assert calls[0][1]['Authorization'] == 'Bearer hf_test'
