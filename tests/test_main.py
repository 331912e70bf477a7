"""
命令行入口测试
"""
import json

import pytest

import main
from conftest import FakeLLMService
from exceptions import APIError
from models.processing_state import ProgressEvent, ProgressPhase

BOOK_TEXT = "Глава 1\n\n" + "Иван вървеше по пътя към селото и мислеше за Мария. " * 5

DIRECT_RESPONSE = json.dumps({
    "chapters": [{"chapterNumber": 1, "title": "Глава 1", "content": "Иван вървеше..."}],
    "characters": [{"name": "Иван"}],
    "locations": [],
}, ensure_ascii=False)


@pytest.fixture(autouse=True)
def char_tokens(monkeypatch):
    import services.token_estimator as token_estimator

    monkeypatch.setattr(token_estimator, "count_tokens", len)


@pytest.fixture
def book_file(tmp_path):
    path = tmp_path / "Под игото.txt"
    path.write_bytes(BOOK_TEXT.encode("cp1251"))
    return path


@pytest.fixture
def fake_service(monkeypatch):
    services = []

    def factory():
        service = FakeLLMService(lambda *_: DIRECT_RESPONSE)
        services.append(service)
        return service

    monkeypatch.setattr(main, "create_llm_service", factory)
    return services


class TestPrintProgress:
    def test_percent(self, capsys):
        main.print_progress(ProgressEvent(ProgressPhase.SPLITTING, message="Разделяне"))
        assert capsys.readouterr().out.strip() == "[  5.0%] Разделяне"

    def test_no_percent(self, capsys):
        main.print_progress(ProgressEvent(ProgressPhase.EXTRACTING, current=1, total=2, message="Партида 1/2"))
        assert "%" not in capsys.readouterr().out

    def test_failed(self, capsys):
        main.print_progress(ProgressEvent(ProgressPhase.FAILED, message="грешка"))
        assert "❌ грешка" in capsys.readouterr().out


class TestBookImportApp:
    @pytest.mark.asyncio
    async def test_run_writes_analysis(self, book_file, tmp_path, fake_service):
        app = main.BookImportApp(output_dir=str(tmp_path / "out"))

        output_path = await app.run(str(book_file))

        assert output_path == tmp_path / "out" / "Под игото_analysis.json"
        data = json.loads(output_path.read_text(encoding="utf-8"))
        assert data["chapters"][0]["title"] == "Глава 1"
        assert data["styleAnalysis"]["tone"] == "Неутрален"
        assert data["metadata"]["encoding"] == "cp1251"
        assert data["metadata"]["mode"] == "direct"
        assert data["metadata"]["truncated"] is False

    @pytest.mark.asyncio
    async def test_estimate_only_skips_llm(self, book_file, tmp_path, fake_service, capsys):
        app = main.BookImportApp(output_dir=str(tmp_path / "out"))

        assert await app.run(str(book_file), estimate_only=True) is None

        assert fake_service == []
        assert "Token" in capsys.readouterr().out


class TestProcessFile:
    @pytest.mark.asyncio
    async def test_missing_file_returns_error_code(self, tmp_path):
        args = main.build_parser().parse_args([str(tmp_path / "missing.txt")])
        assert await main.process_file(args) == 1

    @pytest.mark.asyncio
    async def test_success(self, book_file, tmp_path, fake_service):
        args = main.build_parser().parse_args([str(book_file), "-o", str(tmp_path / "out")])
        assert await main.process_file(args) == 0

    @pytest.mark.asyncio
    async def test_transport_failure_reports_phase(self, book_file, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(
            main,
            "create_llm_service",
            lambda: FakeLLMService(lambda *_: APIError("bad request", is_retryable=False)),
        )
        args = main.build_parser().parse_args([str(book_file), "-o", str(tmp_path / "out")])

        assert await main.process_file(args) == 1

        out = capsys.readouterr().out
        assert "处理错误" in out
        assert "出错阶段: direct" in out


def test_parser_defaults():
    args = main.build_parser().parse_args([])
    assert args.file is None
    assert args.estimate is False
    assert args.web is False
    assert args.port == 8000


def test_main_without_file(monkeypatch, capsys):
    monkeypatch.setattr(main, "setup_logging", lambda: None)
    assert main.main([]) == 2
