import json
import logging
from types import SimpleNamespace

import pytest

from challenges import ChallengeError, ChallengesNotConfigured, build_prompt, generate_challenges


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(**kwargs):
    completions = FakeCompletions(**kwargs)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def test_prompt_mentions_inputs():
    prompt = build_prompt([{"name": "Read"}], {"Read": 80})
    assert "5 personalized habit challenges" in prompt
    assert '"name": "Read"' in prompt
    assert '"Read": 80' in prompt


def test_generate_returns_parsed_json():
    client, completions = fake_client(content=json.dumps({"challenges": ["Read 10 pages"]}))
    result = generate_challenges([{"name": "Read"}], {}, client=client)
    assert result == {"challenges": ["Read 10 pages"]}
    call = completions.calls[0]
    assert call["response_format"] == {"type": "json_object"}
    assert call["messages"][0]["role"] == "user"


def test_generate_wraps_errors():
    client, _ = fake_client(error=RuntimeError("boom"))
    with pytest.raises(ChallengeError):
        generate_challenges([], {}, client=client)

    client, _ = fake_client(content="not json")
    with pytest.raises(ChallengeError):
        generate_challenges([], {}, client=client)


def test_missing_api_key(monkeypatch, caplog):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with caplog.at_level(logging.WARNING, logger="challenges"):
        with pytest.raises(ChallengesNotConfigured):
            generate_challenges([], {})
    assert "OPENAI_API_KEY" in caplog.text


def test_challenges_endpoint(client, monkeypatch):
    monkeypatch.setattr("main.generate_challenges", lambda habits, performance: {"challenges": ["x"]})
    res = client.post("/challenges", json={"habits": [{"name": "Read"}]})
    assert res.json() == {"challenges": ["x"]}


def test_challenges_endpoint_errors(client, monkeypatch):
    def not_configured(habits, performance):
        raise ChallengesNotConfigured("no key")

    def failing(habits, performance):
        raise ChallengeError("boom")

    monkeypatch.setattr("main.generate_challenges", not_configured)
    assert client.post("/challenges", json={}).status_code == 503

    monkeypatch.setattr("main.generate_challenges", failing)
    res = client.post("/challenges", json={})
    assert res.status_code == 500
    assert res.json()["detail"] == "AI Challenge generation failed"
