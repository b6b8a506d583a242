from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from conftest import NOW, USER
from levelup import llm, revelations
from levelup.errors import LLMError

PLAN = """## Path Forward

- Finish the chapter draft first.

## Schedule

- 10:00 - 10:25: Draft chapter

## Seed Action

- Email one reader."""


def fake_client(content):
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )
    return client


def test_parse_sections():
    out = revelations.parse_sections(PLAN)
    assert list(out) == ["Path Forward", "Schedule", "Seed Action"]
    assert out["Schedule"] == "- 10:00 - 10:25: Draft chapter"
    assert revelations.parse_sections("intro\n## A\nbody")[""] == "intro"


def test_parse_suggestion_tolerates_bold():
    text = "**Duration:** 25 min\nTask: Outline the talk\nMeaning: It makes the\nconference real."
    assert revelations.parse_suggestion(text) == {
        "Duration": "25 min",
        "Task": "Outline the talk",
        "Meaning": "It makes the conference real.",
    }


def test_missing_key_names_env_var():
    with pytest.raises(LLMError, match="DEEPSEEK_API_KEY environment variable not set"):
        llm.chat([{"role": "user", "content": "hi"}], provider="deepseek", api_key=None)


def test_unknown_provider():
    with pytest.raises(LLMError):
        llm.get_provider("claude-ish")


def test_empty_reply_is_an_error():
    with patch("levelup.llm.OpenAI", return_value=fake_client("   ")):
        with pytest.raises(LLMError):
            llm.chat([{"role": "user", "content": "hi"}], provider="openai", api_key="k")


def test_generate_revelation_saves_snapshot(cfg, profile):
    client = fake_client(PLAN)
    with patch("levelup.llm.OpenAI", return_value=client) as factory:
        rev = revelations.generate_revelation(
            cfg, USER, provider="deepseek", api_key="sk-test", message="short day", now=NOW
        )

    factory.assert_called_once_with(api_key="sk-test", base_url="https://api.deepseek.com/v1")
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "deepseek-chat"
    assert kwargs["messages"][0]["role"] == "system"
    assert "short day" in kwargs["messages"][1]["content"]

    latest = revelations.latest_revelation(cfg, USER)
    assert latest.id == rev.id
    assert latest.revelation_text == PLAN
    assert latest.context_snapshot["user_message"] == "short day"
    assert revelations.latest_revelation(cfg, USER, revelations.NEXT_TASK) is None


def test_suggest_next_task(cfg, profile):
    reply = "Duration: 20 min\nTask: Sketch the cover\nMeaning: The book gets a face."
    with patch("levelup.llm.OpenAI", return_value=fake_client(reply)):
        rev = revelations.suggest_next_task(cfg, USER, provider="openai", api_key="k", now=NOW)
    assert rev.suggestion_type == revelations.NEXT_TASK
    (saved,) = revelations.revelation_history(cfg, USER, revelations.NEXT_TASK)
    assert revelations.parse_suggestion(saved.revelation_text)["Task"] == "Sketch the cover"
