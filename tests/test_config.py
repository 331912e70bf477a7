"""
测试配置管理模块
"""

import pytest

import config
from config import (
    SUPPORTED_API_PROVIDERS,
    APIConfig,
    ProcessingConfig,
    get_api_config,
    get_processing_config,
    reset_config,
)
from exceptions import APIKeyError, ConfigurationError


class TestAPIConfig:
    """测试APIConfig类"""

    def test_supported_providers(self):
        assert SUPPORTED_API_PROVIDERS == ("gemini", "openai")

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("API_PROVIDER", "GEMINI")
        monkeypatch.setenv("GEMINI_PRO_MODEL", "gemini-custom-pro")
        cfg = APIConfig()
        assert cfg.provider == "gemini"
        assert cfg.gemini_pro_model == "gemini-custom-pro"

    def test_model_for_tier(self):
        cfg = APIConfig(
            provider="gemini",
            gemini_key="real-key",
            gemini_pro_model="g-pro",
            gemini_flash_model="g-flash",
            openai_pro_model="o-pro",
            openai_flash_model="o-flash",
        )
        assert cfg.model_for_tier("pro") == "g-pro"
        assert cfg.model_for_tier("flash") == "g-flash"

        cfg.provider = "openai"
        assert cfg.model_for_tier("pro") == "o-pro"
        assert cfg.model_for_tier("flash") == "o-flash"

    def test_unknown_tier(self):
        with pytest.raises(ConfigurationError):
            APIConfig().model_for_tier("ultra")

    def test_api_key_for_provider(self):
        cfg = APIConfig(provider="openai", openai_key="sk-real")
        assert cfg.api_key == "sk-real"

    def test_unsupported_provider(self):
        with pytest.raises(ConfigurationError):
            APIConfig(provider="zhipu").validate()

    @pytest.mark.parametrize("key", [None, "", "your_gemini_api_key", "put-key-here"])
    def test_placeholder_key_rejected(self, key):
        cfg = APIConfig(provider="gemini", gemini_key=key)
        with pytest.raises(ConfigurationError):
            _ = cfg.api_key

    def test_missing_key_names_provider(self):
        cfg = APIConfig(provider="openai", openai_key=None)
        with pytest.raises(APIKeyError) as exc_info:
            _ = cfg.api_key
        assert exc_info.value.provider == "openai"

    def test_base_url_only_for_openai(self):
        assert APIConfig(provider="openai", openai_base="http://localhost:8000/v1").base_url == (
            "http://localhost:8000/v1"
        )
        assert APIConfig(provider="gemini", openai_base="http://localhost:8000/v1").base_url is None


class TestProcessingConfig:
    """测试ProcessingConfig类"""

    def test_defaults(self):
        cfg = ProcessingConfig()
        assert cfg.target_chunk_chars == 30000
        assert cfg.min_chunk_chars == 10000
        assert cfg.search_back_chars == 5000
        assert cfg.search_forward_chars == 2000
        assert cfg.heading_forward_chars == 8000
        assert cfg.parallel_limit == 5
        assert cfg.direct_analysis_threshold == 160000
        assert cfg.style_sample_chars == 8000
        assert cfg.max_input_chars == 800000
        assert cfg.min_input_chars == 100
        assert cfg.encodings == ["utf-8-sig", "cp1251", "latin1"]
        cfg.validate()

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PARALLEL_LIMIT", "3")
        monkeypatch.setenv("TARGET_CHUNK_CHARS", " ")
        cfg = ProcessingConfig()
        assert cfg.parallel_limit == 3
        assert cfg.target_chunk_chars == 30000

    def test_invalid_int_raises(self, monkeypatch):
        monkeypatch.setenv("MAX_RETRY", "five")
        with pytest.raises(ConfigurationError) as exc_info:
            ProcessingConfig()
        assert "MAX_RETRY" in exc_info.value.message

    @pytest.mark.parametrize(
        "overrides",
        [
            {"target_chunk_chars": 0},
            {"min_chunk_chars": 0},
            {"min_chunk_chars": 40000},
            {"search_back_chars": -1},
            {"parallel_limit": 0},
            {"direct_analysis_threshold": -1},
            {"style_sample_chars": 0},
            {"max_input_chars": 50},
            {"max_retry": 0},
        ],
    )
    def test_validate_rejects(self, overrides):
        with pytest.raises(ConfigurationError):
            ProcessingConfig(**overrides).validate()


class TestSingletons:
    def test_get_api_config_is_cached(self):
        assert get_api_config() is get_api_config()

    def test_get_processing_config_is_cached(self):
        assert get_processing_config() is get_processing_config()

    def test_reset_config_rereads_environment(self, monkeypatch):
        first = get_processing_config()
        monkeypatch.setenv("PARALLEL_LIMIT", "9")
        reset_config()
        second = get_processing_config()
        assert second is not first
        assert second.parallel_limit == 9
        assert config._api_config is None
