"""
Pytest 配置文件
为测试提供环境变量隔离和可编排的假LLM服务
"""
import asyncio
import re

import pytest

import config
import splitter
from services.llm_service import GenerationOptions, LLMResponse, LLMService

# 测试中不应受到开发者本地 .env 的影响
_CONFIG_VARS = [
    "TARGET_CHUNK_CHARS",
    "MIN_CHUNK_CHARS",
    "SEARCH_BACK_CHARS",
    "SEARCH_FORWARD_CHARS",
    "HEADING_FORWARD_CHARS",
    "PARALLEL_LIMIT",
    "DIRECT_ANALYSIS_THRESHOLD",
    "STYLE_SAMPLE_CHARS",
    "MAX_INPUT_CHARS",
    "MIN_INPUT_CHARS",
    "MAX_RETRY",
    "REQUEST_TIMEOUT",
    "OUTPUT_DIR",
    "CHUNK_PROMPT_TEMPLATE",
    "OPENAI_API_BASE",
    "OPENAI_PRO_MODEL",
    "OPENAI_FLASH_MODEL",
    "GEMINI_PRO_MODEL",
    "GEMINI_FLASH_MODEL",
]

PART_RE = re.compile(r"part (\d+) of (\d+)")


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """为所有测试设置必要的环境变量"""
    for name in _CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)

    # 测试使用 mock，不需要真实的 key
    monkeypatch.setenv("API_PROVIDER", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key-for-ci")
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-key")

    config.reset_config()
    monkeypatch.setattr(splitter, "_splitter", None)
    yield
    config.reset_config()


def part_number(prompt: str) -> int | None:
    """从块提示词中取出块序号（从0开始）"""
    match = PART_RE.search(prompt)
    return int(match.group(1)) - 1 if match else None


class FakeLLMService(LLMService):
    """按脚本返回响应的LLM服务

    handler(prompt, system_prompt, options) 可以返回字符串、LLMResponse，
    或者异常实例（会被抛出）。
    """

    def __init__(self, handler, tokens_per_call: int = 10):
        self.handler = handler
        self.tokens_per_call = tokens_per_call
        self.calls: list[tuple[str, str, GenerationOptions]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        super().__init__()

    def _init_client(self) -> None:
        self.client = None

    async def _call_api(self, prompt, system_prompt, options) -> LLMResponse:
        self.calls.append((prompt, system_prompt, options))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # 让出事件循环，使同一批内的调用真正交错
            await asyncio.sleep(0)
            result = self.handler(prompt, system_prompt, options)
        finally:
            self.in_flight -= 1

        if isinstance(result, Exception):
            raise result
        if isinstance(result, LLMResponse):
            return result
        return LLMResponse(content=result, tokens_used=self.tokens_per_call)


@pytest.fixture
def fake_llm():
    """创建假LLM服务的工厂"""
    return FakeLLMService
