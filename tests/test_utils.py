"""
工具函数测试
"""
import json
import logging

import pytest

import utils
from utils import (
    atomic_write_json,
    decode_text,
    extract_json_object,
    safe_read_text,
    setup_logging,
    truncate_text,
)


class TestExtractJsonObject:
    """测试从模型响应中提取JSON对象"""

    def test_plain_json(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_json_inside_code_fence(self):
        response = 'Ето резултата:\n```json\n{"chapters": [{"title": "Глава 1"}]}\n```\nГотово.'
        assert extract_json_object(response) == {"chapters": [{"title": "Глава 1"}]}

    def test_nested_objects(self):
        response = 'prefix {"a": {"b": {"c": 2}}} suffix'
        assert extract_json_object(response) == {"a": {"b": {"c": 2}}}

    @pytest.mark.parametrize(
        "response",
        [None, "", "няма JSON тук", "{не е валиден}", "[1, 2, 3]", '"просто низ"'],
    )
    def test_returns_none_on_failure(self, response):
        assert extract_json_object(response) is None


class TestAtomicWriteJson:
    """测试原子写入"""

    def test_write_json(self, tmp_path):
        target = tmp_path / "result.json"
        atomic_write_json(target, {"име": "Иван"})

        assert json.loads(target.read_text(encoding="utf-8")) == {"име": "Иван"}
        # 非ASCII字符保持原样
        assert "Иван" in target.read_text(encoding="utf-8")

    def test_creates_directory(self, tmp_path):
        target = tmp_path / "nested" / "dir" / "out.json"
        atomic_write_json(target, [1, 2])
        assert target.exists()

    def test_no_temp_files_left(self, tmp_path):
        atomic_write_json(tmp_path / "out.json", {})
        assert [p.name for p in tmp_path.iterdir()] == ["out.json"]

    def test_unserializable_data_cleans_up(self, tmp_path):
        with pytest.raises(TypeError):
            atomic_write_json(tmp_path / "bad.json", {"x": object()})
        assert list(tmp_path.iterdir()) == []


class TestDecodeText:
    def test_first_matching_encoding_wins(self):
        raw = "Здравей".encode("utf-8")
        assert decode_text(raw, ["utf-8-sig", "cp1251"]) == ("Здравей", "utf-8-sig")

    def test_falls_back_to_cp1251(self):
        raw = "Здравей, свят".encode("cp1251")
        text, encoding = decode_text(raw, ["utf-8-sig", "cp1251"])
        assert text == "Здравей, свят"
        assert encoding == "cp1251"

    def test_all_encodings_fail(self):
        with pytest.raises(UnicodeDecodeError):
            decode_text(b"\xff\xfe\xfa", ["utf-8", "ascii"])


class TestSafeReadText:
    def test_read_file(self, tmp_path):
        path = tmp_path / "book.txt"
        path.write_bytes("Глава 1".encode("cp1251"))
        assert safe_read_text(path, ["utf-8-sig", "cp1251"]) == ("Глава 1", "cp1251")

    def test_nonexistent_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            safe_read_text(tmp_path / "missing.txt", ["utf-8"])


class TestTruncateText:
    def test_no_truncation(self):
        assert truncate_text("кратко", 10) == "кратко"

    def test_truncation(self):
        result = truncate_text("a" * 20, 10)
        assert result == "aaaaaaa..."
        assert len(result) == 10


class TestSetupLogging:
    """测试日志配置功能"""

    @pytest.fixture(autouse=True)
    def reset_logging_state(self):
        utils._logging_configured = False
        root = logging.getLogger()
        saved = root.handlers[:]
        saved_level = root.level
        yield
        root.setLevel(saved_level)
        utils._logging_configured = False
        for handler in root.handlers[:]:
            if handler not in saved:
                handler.close()
                root.removeHandler(handler)

    def test_writes_log_file(self, tmp_path):
        log_file = tmp_path / "import.log"
        setup_logging(level=logging.INFO, log_file=str(log_file))

        logging.getLogger("book_import_test").info("пробно съобщение")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "пробно съобщение" in log_file.read_text(encoding="utf-8")

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        setup_logging(log_file=None)
        assert logging.getLogger().level == logging.DEBUG

    def test_configures_only_once(self, monkeypatch):
        setup_logging(level=logging.WARNING, log_file=None)
        setup_logging(level=logging.DEBUG, log_file=None)
        assert logging.getLogger().level == logging.WARNING
