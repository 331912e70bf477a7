"""
书籍导入工具 - 命令行入口
读取纯文本手稿，分析章节、人物、地点与写作风格，并保存为JSON
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from config import get_api_config, get_processing_config
from exceptions import APIKeyError, BookImportError, ConfigurationError, ProcessingError
from models.processing_state import ProgressEvent, ProgressPhase
from services.book_analysis_service import BookAnalysisService
from services.file_service import FileService
from services.llm_service import create_llm_service
from services.token_estimator import estimate_tokens
from utils import setup_logging
from validators import sanitize_filename, validate_book_text

logger = logging.getLogger(__name__)


def print_progress(event: ProgressEvent) -> None:
    """控制台进度输出"""
    if event.phase == ProgressPhase.FAILED:
        print(f"\n❌ {event.message}")
    elif event.percent is None:
        print(f"         {event.message}")
    else:
        print(f"[{event.percent:5.1f}%] {event.message}")


class BookImportApp:
    """书籍导入应用主类"""

    def __init__(self, output_dir: str | None = None):
        self.processing_config = get_processing_config()
        if output_dir:
            self.processing_config.output_dir = output_dir
        self.file_service = FileService(self.processing_config)

    async def run(self, file_path: str, estimate_only: bool = False) -> Path | None:
        """处理单个手稿文件，返回输出文件路径"""
        self._print_welcome()

        text, encoding = self.file_service.read_text_file(file_path)
        print(f"📄 {file_path} ({encoding}, {len(text):,} 字符)")

        text, truncated = validate_book_text(
            text,
            min_chars=self.processing_config.min_input_chars,
            max_chars=self.processing_config.max_input_chars,
        )
        if truncated:
            print(f"⚠️ 文本过长，只分析前 {self.processing_config.max_input_chars:,} 个字符")

        self._print_estimate(text)
        if estimate_only:
            return None

        llm_service = create_llm_service()
        try:
            service = BookAnalysisService(llm_service, progress_callback=print_progress)
            result = await service.analyze(text)
        finally:
            await llm_service.aclose()

        output_dir = self.file_service.ensure_output_directory()
        stem = sanitize_filename(Path(file_path).stem)
        output_path = output_dir / f"{stem}_analysis.json"
        payload = result.to_dict()
        payload["metadata"] = {
            "source_file": str(file_path),
            "encoding": encoding,
            "truncated": truncated,
            **service.last_run_summary(),
        }
        self.file_service.write_json_file(output_path, payload)

        self._show_results(result, service.last_run_summary(), output_path)
        return output_path

    def _print_welcome(self) -> None:
        """打印欢迎信息"""
        print("\n" + "=" * 60)
        print("📚 书籍导入工具")
        print("=" * 60)
        api_cfg = get_api_config()
        print(f"🔧 API提供商: {api_cfg.provider.upper()}")
        print(f"📊 并发限制: {self.processing_config.parallel_limit}")
        print(f"🎯 目标块大小: {self.processing_config.target_chunk_chars} 字符")
        print("=" * 60 + "\n")

    def _print_estimate(self, text: str) -> None:
        """打印token预估"""
        estimate = estimate_tokens(text, self.processing_config)
        print("\n📊 Token使用预测:")
        print(f"   原始文本: {estimate['total_tokens']:,} tokens")
        print(f"   处理方式: {'一次性分析' if estimate['path'] == 'direct' else '分块分析'}")
        print(f"   块数: {estimate['chunk_count']}，LLM调用: {estimate['llm_calls']} 次\n")

    def _show_results(self, result, summary: dict, output_path: Path) -> None:
        """显示处理结果"""
        print("\n" + "=" * 60)
        print("🎉 处理完成！")
        print("=" * 60)
        print(f"✅ 章节: {result.chapter_count}")
        print(f"👤 人物: {len(result.characters)}")
        print(f"📍 地点: {len(result.locations)}")
        if summary.get("fallback_chunks"):
            print(f"⚠️ 兜底处理的块: {summary['fallback_chunks']}")
        print(f"⏱️  处理时间: {summary.get('elapsed_time', 0):.1f} 秒")
        print(f"📁 输出文件: {output_path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="分析纯文本书籍，提取章节、人物、地点和写作风格")
    parser.add_argument("file", nargs="?", help="要分析的 .txt/.md 文件")
    parser.add_argument("-o", "--output-dir", help="输出目录（默认读取 OUTPUT_DIR）")
    parser.add_argument("--estimate", action="store_true", help="只估算 token 消耗，不调用LLM")
    parser.add_argument("--web", action="store_true", help="启动 Web API（uvicorn）")
    parser.add_argument("--port", type=int, default=8000, help="Web API 端口")
    return parser


def start_web_api(port: int) -> None:
    """启动 Web API（FastAPI + uvicorn）"""
    import uvicorn

    print(f"\n🚀 正在启动 Web API（http://localhost:{port}）...")
    uvicorn.run("web_api:app", host="0.0.0.0", port=port)


async def process_file(args: argparse.Namespace) -> int:
    """处理单个文件，返回进程退出码"""
    try:
        app = BookImportApp(output_dir=args.output_dir)
        await app.run(args.file, estimate_only=args.estimate)
    except KeyboardInterrupt:
        print("\n用户中断操作")
        return 130
    except (APIKeyError, ConfigurationError) as e:
        print(f"\n❌ 配置错误: {e}")
        print("\n💡 请检查环境变量或.env文件中的配置")
        return 1
    except BookImportError as e:
        print(f"\n❌ 处理错误: {e}")
        if isinstance(e, ProcessingError) and e.phase:
            print(f"   出错阶段: {e.phase}")
        return 1
    except Exception as e:
        logger.exception("未预期的错误")
        print(f"\n❌ 发生未知错误: {e}")
        print("请查看日志文件 book_import.log 获取详细信息")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """主入口函数"""
    args = build_parser().parse_args(argv)
    setup_logging()

    if args.web:
        start_web_api(args.port)
        return 0
    if not args.file:
        print("❌ 请指定要分析的文件，或使用 --web 启动 Web API")
        return 2

    return asyncio.run(process_file(args))


if __name__ == "__main__":
    sys.exit(main())
