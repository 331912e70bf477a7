"""
配置管理模块
使用环境变量管理配置，提高安全性
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from exceptions import APIKeyError, ConfigurationError

# 加载.env文件中的环境变量
load_dotenv()

SUPPORTED_API_PROVIDERS = ("gemini", "openai")


def _env_int(name: str, default: int) -> int:
    """读取整数型环境变量"""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name}必须是整数，当前值: {raw}") from e


def _looks_like_placeholder(key: str | None) -> bool:
    return not key or "your_" in key.lower() or "here" in key.lower()


@dataclass
class APIConfig:
    """API配置类"""

    provider: str = field(default_factory=lambda: os.getenv("API_PROVIDER", "gemini").lower())
    gemini_key: str | None = field(default_factory=lambda: os.getenv("GEMINI_API_KEY"))
    gemini_pro_model: str = field(
        default_factory=lambda: os.getenv("GEMINI_PRO_MODEL", "gemini-3-pro-preview")
    )
    gemini_flash_model: str = field(
        default_factory=lambda: os.getenv("GEMINI_FLASH_MODEL", "gemini-3-flash-preview")
    )
    openai_key: str | None = field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    openai_base: str | None = field(default_factory=lambda: os.getenv("OPENAI_API_BASE"))
    openai_pro_model: str = field(default_factory=lambda: os.getenv("OPENAI_PRO_MODEL", "gpt-4o"))
    openai_flash_model: str = field(
        default_factory=lambda: os.getenv("OPENAI_FLASH_MODEL", "gpt-4o-mini")
    )
    _validated: bool = field(default=False, init=False)

    def validate(self) -> None:
        """验证配置（延迟到实际使用时）"""
        if self._validated:
            return

        if self.provider not in SUPPORTED_API_PROVIDERS:
            raise ConfigurationError(
                f"不支持的API提供商: {self.provider}. "
                f"支持的提供商: {', '.join(SUPPORTED_API_PROVIDERS)}"
            )

        if self.provider == "gemini" and _looks_like_placeholder(self.gemini_key):
            raise APIKeyError(
                "使用Gemini API时必须设置GEMINI_API_KEY环境变量。\n"
                "当前值看起来像是占位符，请在 .env 文件中填入真实的 API Key",
                provider="gemini",
            )

        if self.provider == "openai" and _looks_like_placeholder(self.openai_key):
            raise APIKeyError(
                "使用OpenAI API时必须设置OPENAI_API_KEY环境变量。\n"
                "提示：OpenAI API Key 通常以 'sk-' 开头",
                provider="openai",
            )

        self._validated = True

    @property
    def api_key(self) -> str:
        """获取当前API密钥"""
        self.validate()

        key = self.gemini_key if self.provider == "gemini" else self.openai_key
        if not key:
            raise APIKeyError(f"{self.provider} API密钥未配置", provider=self.provider)
        return key

    @property
    def base_url(self) -> str | None:
        """获取API基础URL（仅OpenAI兼容接口使用）"""
        if self.provider == "openai":
            return self.openai_base
        return None

    def model_for_tier(self, tier: str) -> str:
        """根据模型档位（pro/flash）返回具体的模型名称"""
        if tier not in ("pro", "flash"):
            raise ConfigurationError(f"未知的模型档位: {tier}")
        if self.provider == "gemini":
            return self.gemini_pro_model if tier == "pro" else self.gemini_flash_model
        return self.openai_pro_model if tier == "pro" else self.openai_flash_model


@dataclass
class ProcessingConfig:
    """处理配置类"""

    output_dir: str = field(default_factory=lambda: os.getenv("OUTPUT_DIR", "outputs"))

    # 编码配置
    encodings: list[str] = field(
        default_factory=lambda: ["utf-8-sig", "cp1251", "latin1"]
    )

    # 分块参数（按字符计，约4个字符=1个token）
    target_chunk_chars: int = field(default_factory=lambda: _env_int("TARGET_CHUNK_CHARS", 30000))
    min_chunk_chars: int = field(default_factory=lambda: _env_int("MIN_CHUNK_CHARS", 10000))
    search_back_chars: int = field(default_factory=lambda: _env_int("SEARCH_BACK_CHARS", 5000))
    search_forward_chars: int = field(
        default_factory=lambda: _env_int("SEARCH_FORWARD_CHARS", 2000)
    )
    # 章节标题是最理想的切分点，允许向目标点之后多看一段
    heading_forward_chars: int = field(
        default_factory=lambda: _env_int("HEADING_FORWARD_CHARS", 8000)
    )

    # 并发与阈值
    parallel_limit: int = field(default_factory=lambda: _env_int("PARALLEL_LIMIT", 5))
    direct_analysis_threshold: int = field(
        default_factory=lambda: _env_int("DIRECT_ANALYSIS_THRESHOLD", 160000)
    )
    style_sample_chars: int = field(default_factory=lambda: _env_int("STYLE_SAMPLE_CHARS", 8000))

    # 输入限制（由调用方在进入流水线前执行）
    max_input_chars: int = field(default_factory=lambda: _env_int("MAX_INPUT_CHARS", 800000))
    min_input_chars: int = field(default_factory=lambda: _env_int("MIN_INPUT_CHARS", 100))

    # 重试与超时
    max_retry: int = field(default_factory=lambda: _env_int("MAX_RETRY", 5))
    request_timeout: int = field(default_factory=lambda: _env_int("REQUEST_TIMEOUT", 120))

    def validate(self) -> None:
        """验证配置"""
        if self.target_chunk_chars <= 0:
            raise ConfigurationError("TARGET_CHUNK_CHARS必须大于0")

        if self.min_chunk_chars <= 0:
            raise ConfigurationError("MIN_CHUNK_CHARS必须大于0")

        if self.min_chunk_chars > self.target_chunk_chars:
            raise ConfigurationError("MIN_CHUNK_CHARS不能大于TARGET_CHUNK_CHARS")

        if min(self.search_back_chars, self.search_forward_chars, self.heading_forward_chars) < 0:
            raise ConfigurationError("搜索窗口不能为负数")

        if self.parallel_limit <= 0:
            raise ConfigurationError("PARALLEL_LIMIT必须大于0")

        if self.direct_analysis_threshold < 0:
            raise ConfigurationError("DIRECT_ANALYSIS_THRESHOLD不能小于0")

        if self.style_sample_chars <= 0:
            raise ConfigurationError("STYLE_SAMPLE_CHARS必须大于0")

        if self.max_input_chars <= self.min_input_chars:
            raise ConfigurationError("MAX_INPUT_CHARS必须大于MIN_INPUT_CHARS")

        if self.max_retry < 1:
            raise ConfigurationError("MAX_RETRY必须至少为1")


# 全局配置实例
_api_config: APIConfig | None = None
_processing_config: ProcessingConfig | None = None


def get_api_config() -> APIConfig:
    """获取API配置单例"""
    global _api_config
    if _api_config is None:
        _api_config = APIConfig()
    return _api_config


def get_processing_config() -> ProcessingConfig:
    """获取处理配置单例"""
    global _processing_config
    if _processing_config is None:
        _processing_config = ProcessingConfig()
        _processing_config.validate()
    return _processing_config


def reset_config() -> None:
    """清空配置单例，下次访问时重新读取环境变量"""
    global _api_config, _processing_config
    _api_config = None
    _processing_config = None
