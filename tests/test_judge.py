"""
Tests for the judge strategies
"""

import json

import pytest

from modeljudge.judge import NO_ANSWER_TEXT, LengthJudge, LLMJudge, build_judge
from modeljudge.models import NO_MODEL, Candidate
from modeljudge.settings import Settings
from conftest import make_gpt


def gpt(answer):
    return Candidate("gpt-4o-mini", "gpt", "GPT", answer)


def gemini(answer):
    return Candidate("gemini-2.5-flash", "gemini", "Gemini", answer)


@pytest.fixture
def length_judge():
    return LengthJudge()


@pytest.mark.asyncio
async def test_only_provider_a_real(length_judge):
    """Scenario: GPT answers, Gemini is not configured"""
    verdict = await length_judge.judge(
        "What is 2+2?", gpt("4"), gemini("Gemini API key not configured yet.")
    )

    assert verdict.best_answer == "4"
    assert verdict.model == "gpt-4o-mini"


@pytest.mark.asyncio
async def test_only_provider_b_real(length_judge):
    verdict = await length_judge.judge("q", gpt("No answer from GPT."), gemini("Short."))

    assert verdict.best_answer == "Short."
    assert verdict.model == "gemini-2.5-flash"


@pytest.mark.asyncio
async def test_both_empty(length_judge):
    verdict = await length_judge.judge("q", gpt(""), gemini(""))

    assert verdict.best_answer == NO_ANSWER_TEXT == "No models returned an answer."
    assert verdict.model == NO_MODEL == "none"


@pytest.mark.asyncio
async def test_neither_real_keeps_first_non_empty_sentinel(length_judge):
    verdict = await length_judge.judge(
        "q", gpt("   "), gemini("Gemini API key not configured yet.")
    )

    assert verdict.best_answer == "Gemini API key not configured yet."
    assert verdict.model == "none"


@pytest.mark.asyncio
async def test_longer_answer_wins(length_judge):
    """Scenario: 10 characters vs 50 characters"""
    a = "x" * 10
    b = "y" * 50

    verdict = await length_judge.judge("q", gpt(a), gemini(b))

    assert verdict.best_answer == b
    assert verdict.model == "gemini-2.5-flash"


@pytest.mark.asyncio
@pytest.mark.parametrize("len_a,len_b,expected", [
    (51, 50, "gpt-4o-mini"),
    (50, 51, "gemini-2.5-flash"),
    (1, 2, "gemini-2.5-flash"),
    (7, 7, "gpt-4o-mini"),
])
async def test_length_rule_and_ties(length_judge, len_a, len_b, expected):
    verdict = await length_judge.judge("q", gpt("a" * len_a), gemini("b" * len_b))
    assert verdict.model == expected


@pytest.mark.asyncio
async def test_llm_judge_follows_chosen_model():
    engine = make_gpt(json.dumps({"chosen_model": "gemini", "reason": "More precise."}))
    judge = LLMJudge(engine, model="gpt-4o-mini")

    verdict = await judge.judge("Capital of France?", gpt("Paris, I think, maybe."), gemini("Paris."))

    assert verdict.best_answer == "Paris."
    assert verdict.model == "gemini-2.5-flash"
    assert verdict.explanation == "More precise."
    assert verdict.fallback is False

    call = engine.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert "Capital of France?" in call["user"]
    assert "Paris, I think, maybe." in call["user"]
    assert "chosen_model" in call["user"]


@pytest.mark.asyncio
async def test_llm_judge_accepts_fenced_json():
    engine = make_gpt('```json\n{"chosen_model": "gpt", "reason": "Clearer."}\n```')
    judge = LLMJudge(engine)

    verdict = await judge.judge("q", gpt("Answer A"), gemini("Answer B is longer"))

    assert verdict.model == "gpt-4o-mini"
    assert verdict.explanation == "Clearer."


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [
    "I prefer the first one.",
    json.dumps({"chosen_model": "claude", "reason": "x"}),
    json.dumps({"reason": "no choice"}),
    json.dumps(["gpt"]),
    "",
])
async def test_llm_judge_malformed_output_defaults_to_provider_a(raw):
    judge = LLMJudge(make_gpt(raw))

    verdict = await judge.judge("q", gpt("Answer A"), gemini("A much longer answer B"))

    assert verdict.best_answer == "Answer A"
    assert verdict.model == "gpt-4o-mini"
    assert verdict.fallback is True
    assert "Defaulted to GPT" in verdict.explanation


@pytest.mark.asyncio
async def test_llm_judge_transport_error_defaults_to_provider_a():
    judge = LLMJudge(make_gpt(error=ConnectionError("boom")))

    verdict = await judge.judge("q", gpt("Answer A"), gemini("Answer B"))

    assert verdict.model == "gpt-4o-mini"
    assert verdict.fallback is True


@pytest.mark.asyncio
async def test_llm_judge_without_credential_skips_the_call():
    engine = make_gpt('{"chosen_model": "gemini", "reason": "x"}', api_key=None)
    judge = LLMJudge(engine)

    verdict = await judge.judge("q", gpt("Answer A"), gemini("Answer B"))

    assert verdict.model == "gpt-4o-mini"
    assert verdict.fallback is True
    assert engine.calls == []


@pytest.mark.asyncio
async def test_llm_judge_not_called_when_one_side_unavailable():
    engine = make_gpt('{"chosen_model": "gpt", "reason": "x"}')
    judge = LLMJudge(engine)

    verdict = await judge.judge("q", gpt("No answer from GPT."), gemini("Real answer"))

    assert verdict.model == "gemini-2.5-flash"
    assert engine.calls == []


def test_build_judge_selects_strategy():
    engine = make_gpt()

    assert isinstance(build_judge(Settings(judge_strategy="length"), engine), LengthJudge)
    llm = build_judge(Settings(judge_strategy="LLM", judge_model="gpt-4o"), engine)
    assert isinstance(llm, LLMJudge)
    assert llm.model == "gpt-4o"

    with pytest.raises(ValueError):
        build_judge(Settings(judge_strategy="coin-flip"), engine)


@pytest.mark.asyncio
async def test_build_judge_uses_configured_sentinels():
    config = Settings(no_answer_prefix="[error]", not_configured_marker="missing key")
    judge = build_judge(config, make_gpt())

    verdict = await judge.judge("q", gpt("[error] upstream failed badly"), gemini("Fine."))

    assert verdict.best_answer == "Fine."
    assert verdict.model == "gemini-2.5-flash"
    assert judge.classifier.is_real_answer("No answer from GPT.")
