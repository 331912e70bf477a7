"""
风格分析测试
"""
import json

import pytest

from exceptions import APIError, RateLimitError
from models.book import StyleProfile
from prompts import STYLE_SYSTEM_PROMPT
from services.style_analyzer import SAMPLE_SEPARATOR, StyleAnalyzer


def test_build_sample_takes_head_middle_tail():
    analyzer = StyleAnalyzer(llm_service=None, sample_size=4)
    text = "AAAAxxxxMMMMyyyyZZZZ"  # 20 个字符，中点为 10

    sample = analyzer.build_sample(text)

    assert sample.split(SAMPLE_SEPARATOR) == ["AAAA", "MMMM", "ZZZZ"]


def test_build_sample_short_text_overlaps():
    analyzer = StyleAnalyzer(llm_service=None, sample_size=8000)
    text = "кратък текст"

    parts = analyzer.build_sample(text).split(SAMPLE_SEPARATOR)

    assert parts == [text, text, text]


@pytest.mark.asyncio
async def test_analyze_style_parses_response(fake_llm):
    response = json.dumps({
        "tone": "Мрачен и напрегнат",
        "pov": "first",
        "tense": "present",
        "descriptionDensity": "rich",
        "dialogueStyle": "Кратки реплики",
    }, ensure_ascii=False)
    llm = fake_llm(lambda *_: response)
    analyzer = StyleAnalyzer(llm)

    style = await analyzer.analyze_style("Текст " * 100)

    assert style.tone == "Мрачен и напрегнат"
    assert style.pov == "first"
    assert style.description_density == "rich"
    assert analyzer.tokens_used == 10

    _, system_prompt, options = llm.calls[0]
    assert system_prompt == STYLE_SYSTEM_PROMPT
    assert options.model_tier == "flash"
    assert options.max_output_tokens == 1024


@pytest.mark.asyncio
async def test_partial_response_filled_from_neutral(fake_llm):
    llm = fake_llm(lambda *_: '{"tone": "Лиричен"}')

    style = await StyleAnalyzer(llm).analyze_style("Текст")

    assert style.tone == "Лиричен"
    assert style.pov == StyleProfile.neutral().pov


@pytest.mark.asyncio
async def test_unparseable_response_gives_neutral(fake_llm):
    llm = fake_llm(lambda *_: "Стилът е приятен.")

    style = await StyleAnalyzer(llm).analyze_style("Текст")

    assert style == StyleProfile.neutral()


@pytest.mark.asyncio
async def test_transport_error_propagates(fake_llm, monkeypatch):
    import services.llm_service as llm_service

    async def no_sleep(_seconds):
        return None

    monkeypatch.setattr(llm_service.asyncio, "sleep", no_sleep)
    llm = fake_llm(lambda *_: RateLimitError("limit"))
    llm.processing_config.max_retry = 2

    with pytest.raises(APIError):
        await StyleAnalyzer(llm).analyze_style("Текст")

    assert len(llm.calls) == 2
