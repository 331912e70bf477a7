"""
LLM服务模块
提供统一的LLM调用接口（流水线中的结构化提取“预言机”）
"""
import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from config import APIConfig, ProcessingConfig, get_api_config, get_processing_config
from exceptions import APIError, APIKeyError, RateLimitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationOptions:
    """单次生成的参数"""

    model_tier: str = "pro"  # pro|flash
    thinking_level: str = "high"  # low|high
    temperature: float = 0.7
    max_output_tokens: int = 8192


# 流水线各环节使用的预设
CHUNK_EXTRACTION_OPTIONS = GenerationOptions(
    model_tier="flash", thinking_level="low", temperature=0.2, max_output_tokens=16384
)
STYLE_ANALYSIS_OPTIONS = GenerationOptions(
    model_tier="flash", thinking_level="low", temperature=0.2, max_output_tokens=1024
)
DIRECT_IMPORT_OPTIONS = GenerationOptions(
    model_tier="pro", thinking_level="high", temperature=0.3, max_output_tokens=32768
)


@dataclass
class LLMResponse:
    """LLM响应模型"""
    content: str
    tokens_used: int = 0
    response_time: float | None = None
    model: str | None = None
    finish_reason: str | None = None


class LLMService(ABC):
    """LLM服务基类"""

    def __init__(
        self,
        api_config: APIConfig | None = None,
        processing_config: ProcessingConfig | None = None,
    ):
        self.api_config = api_config or get_api_config()
        self.processing_config = processing_config or get_processing_config()
        self._init_client()

    @abstractmethod
    def _init_client(self) -> None:
        """初始化客户端"""
        pass

    @abstractmethod
    async def _call_api(
        self, prompt: str, system_prompt: str, options: GenerationOptions
    ) -> LLMResponse:
        """调用API的具体实现"""
        pass

    async def aclose(self) -> None:
        """释放客户端持有的连接"""
        pass

    async def call(
        self,
        prompt: str,
        system_prompt: str = "",
        options: GenerationOptions | None = None,
        chunk_id: int | None = None,
    ) -> LLMResponse:
        """统一的调用接口，带重试；传输层失败最终抛出 APIError"""
        options = options or GenerationOptions()
        chunk_info = f" [块 {chunk_id}]" if chunk_id is not None else ""

        max_retries = self.processing_config.max_retry
        last_error: Exception | None = None
        for attempt in range(max_retries):
            try:
                if attempt == 0:
                    logger.debug(f"调用LLM API{chunk_info}...")

                start_time = datetime.now()
                llm_response = await self._call_api(prompt, system_prompt, options)
                response_time = (datetime.now() - start_time).total_seconds()
                llm_response.response_time = response_time

                logger.debug(f"LLM API调用成功{chunk_info}，耗时: {response_time:.2f}秒")
                return llm_response

            except APIKeyError:
                raise

            except RateLimitError as e:
                last_error = e
                # 速率限制错误，等待更长时间
                wait_time = e.retry_after or (2 ** attempt) + random.uniform(0, 1)
                logger.warning(f"API速率限制{chunk_info}，等待 {wait_time:.1f} 秒后重试")
                await asyncio.sleep(wait_time)

            except APIError as e:
                if not e.is_retryable:
                    # 不可重试的错误，直接抛出
                    raise

                last_error = e
                wait_time = (2 ** attempt) + random.uniform(0, 1)
                logger.warning(f"API调用失败{chunk_info}，{wait_time:.1f}秒后重试: {e.message}")
                await asyncio.sleep(wait_time)

        # 所有重试都失败
        raise APIError(
            f"LLM API多次失败{chunk_info}: {last_error}", is_retryable=False, chunk_id=chunk_id
        ) from last_error


class GeminiService(LLMService):
    """Gemini服务实现（google-genai SDK）"""

    def _init_client(self) -> None:
        """初始化Gemini客户端"""
        from google import genai
        from google.genai import types

        self._types = types
        self._thinking_levels = {
            "low": types.ThinkingLevel.LOW,
            "high": types.ThinkingLevel.HIGH,
        }
        try:
            self.client = genai.Client(
                api_key=self.api_config.api_key,
                http_options=types.HttpOptions(timeout=self.processing_config.request_timeout * 1000),
            )
        except APIKeyError:
            raise
        except Exception as e:
            raise APIKeyError(f"Gemini API配置失败: {str(e)}", provider="gemini") from e
        logger.info(f"Gemini API初始化成功 (模型: {self.api_config.gemini_pro_model} / "
                    f"{self.api_config.gemini_flash_model})")

    async def aclose(self) -> None:
        await self.client.aio.aclose()

    async def _call_api(
        self, prompt: str, system_prompt: str, options: GenerationOptions
    ) -> LLMResponse:
        """调用Gemini API"""
        from google.genai import errors

        types = self._types
        model = self.api_config.model_for_tier(options.model_tier)
        config = types.GenerateContentConfig(
            system_instruction=system_prompt or None,
            temperature=options.temperature,
            max_output_tokens=options.max_output_tokens,
            thinking_config=types.ThinkingConfig(
                thinking_level=self._thinking_levels.get(options.thinking_level)
            ),
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=model, contents=prompt, config=config
            )
        except errors.APIError as e:
            raise _translate_status_error(e.code, str(e)) from e
        except (asyncio.TimeoutError, ConnectionError) as e:
            raise APIError(f"Gemini API连接失败: {str(e)}", is_retryable=True) from e

        finish_reason = None
        if response.candidates:
            reason = response.candidates[0].finish_reason
            finish_reason = getattr(reason, "name", None) or (str(reason) if reason else None)

        text = response.text or ""
        if not text:
            # 空响应（例如被安全过滤器拦截）属于内容问题，由调用方走兜底逻辑
            logger.warning(f"Gemini API返回空内容 (finish_reason={finish_reason})")

        usage = response.usage_metadata
        return LLMResponse(
            content=text,
            tokens_used=(usage.total_token_count or 0) if usage else 0,
            model=model,
            finish_reason=finish_reason,
        )


# 推理模型不接受 temperature，需要使用 reasoning_effort
_OPENAI_REASONING_PREFIXES = ("o1", "o3", "o4", "gpt-5")


class OpenAIService(LLMService):
    """OpenAI服务实现"""

    def _init_client(self) -> None:
        """初始化OpenAI客户端"""
        import httpx
        from openai import AsyncOpenAI

        try:
            self._http_client = httpx.AsyncClient(
                limits=httpx.Limits(max_connections=100),
                timeout=float(self.processing_config.request_timeout),
            )
            self.client = AsyncOpenAI(
                api_key=self.api_config.api_key,
                base_url=self.api_config.base_url,
                http_client=self._http_client,
            )
        except APIKeyError:
            raise
        except Exception as e:
            raise APIKeyError(f"OpenAI API配置失败: {str(e)}", provider="openai") from e
        logger.info(f"OpenAI API客户端初始化成功 (模型: {self.api_config.openai_pro_model} / "
                    f"{self.api_config.openai_flash_model})")

    async def aclose(self) -> None:
        await self._http_client.aclose()

    async def _call_api(
        self, prompt: str, system_prompt: str, options: GenerationOptions
    ) -> LLMResponse:
        """调用OpenAI API"""
        import openai

        model = self.api_config.model_for_tier(options.model_tier)
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs = {"model": model, "messages": messages}
        if model.startswith(_OPENAI_REASONING_PREFIXES):
            kwargs["reasoning_effort"] = options.thinking_level
            kwargs["max_completion_tokens"] = options.max_output_tokens
        else:
            kwargs["temperature"] = options.temperature
            kwargs["max_tokens"] = options.max_output_tokens

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except openai.AuthenticationError as e:
            raise APIKeyError("API密钥无效或已过期", provider="openai") from e
        except openai.RateLimitError as e:
            retry_after = e.response.headers.get("retry-after") if e.response else None
            raise RateLimitError(
                "API速率限制", retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            ) from e
        except openai.APIStatusError as e:
            raise _translate_status_error(e.status_code, str(e)) from e
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            raise APIError(f"OpenAI API连接失败: {str(e)}", is_retryable=True) from e

        choice = response.choices[0]
        return LLMResponse(
            content=choice.message.content or "",
            tokens_used=response.usage.total_tokens if response.usage else 0,
            model=response.model,
            finish_reason=choice.finish_reason,
        )


def _translate_status_error(status: int | None, detail: str) -> Exception:
    """把HTTP状态码映射为项目异常"""
    if status in (401, 403):
        return APIKeyError("API密钥无效或无权限", details=detail)
    if status == 429:
        return RateLimitError(f"API速率限制: {detail}")
    if status is not None and status >= 500:
        return APIError(f"服务端错误 ({status}): {detail}", error_code=str(status), is_retryable=True)
    return APIError(f"API错误 ({status}): {detail}", error_code=str(status), is_retryable=False)


def create_llm_service(api_config: APIConfig | None = None) -> LLMService:
    """工厂函数：创建LLM服务实例，由调用方持有并注入流水线"""
    api_config = api_config or get_api_config()

    if api_config.provider == "gemini":
        return GeminiService(api_config=api_config)
    elif api_config.provider == "openai":
        return OpenAIService(api_config=api_config)
    else:
        raise ValueError(f"不支持的API提供商: {api_config.provider}")
