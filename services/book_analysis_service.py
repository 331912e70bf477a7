"""
书籍分析服务模块
核心业务逻辑：把整本书的文本转换为章节、人物、地点和写作风格
"""
import logging
from collections.abc import Callable

from config import ProcessingConfig, get_processing_config
from exceptions import APIError, APIKeyError, ProcessingError
from merger import merge_chunk_results
from models.book import ChunkExtractionResult, MergedBookResult, StyleProfile
from models.chunk import TextChunk
from models.processing_state import ProcessingState, ProgressEvent, ProgressPhase
from prompts import BOOK_IMPORT_SYSTEM_PROMPT, book_import_prompt
from services.batch_scheduler import BatchScheduler
from services.chunk_extractor import ChunkExtractor, fallback_result
from services.llm_service import DIRECT_IMPORT_OPTIONS, LLMService
from services.style_analyzer import StyleAnalyzer
from splitter import TextSplitter
from tokenizer import estimate_tokens_from_chars
from utils import extract_json_object

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


def needs_chunked_processing(text: str, threshold: int = 160000) -> bool:
    """超过阈值（严格大于）的文本走分块流程，否则一次性分析"""
    return len(text) > threshold


class BookAnalysisService:
    """书籍分析服务类"""

    def __init__(
        self,
        llm_service: LLMService,
        progress_callback: ProgressCallback | None = None,
        splitter: TextSplitter | None = None,
        processing_config: ProcessingConfig | None = None,
    ):
        self.llm_service = llm_service
        self.progress_callback = progress_callback
        self.processing_config = processing_config or get_processing_config()
        self.splitter = splitter or TextSplitter.from_config(self.processing_config)
        self.processing_state: ProcessingState | None = None

    async def analyze(self, text: str) -> MergedBookResult:
        """
        分析整本书

        Args:
            text: 书籍全文（调用方负责长度限制）

        Returns:
            MergedBookResult: 合并后的结果，包含风格分析

        Raises:
            ProcessingError: 输入为空、分块结果为空或LLM调用失败
        """
        if not text or not text.strip():
            raise ProcessingError("文本内容为空")

        state = ProcessingState(text_length=len(text))
        self.processing_state = state
        self._emit(ProgressPhase.STARTED, message=f"开始分析，共 {len(text)} 个字符")

        try:
            if needs_chunked_processing(text, self.processing_config.direct_analysis_threshold):
                state.mode = "chunked"
                result = await self._analyze_chunked(text)
            else:
                state.mode = "direct"
                result = await self._analyze_direct(text)

        except ProcessingError as e:
            self._fail(str(e))
            raise
        except (APIError, APIKeyError) as e:
            phase = state.current_phase.value
            self._fail(str(e))
            raise ProcessingError(f"书籍分析失败: {e.message}", phase=phase) from e

        state.complete()
        logger.info(
            f"书籍分析完成: {result.chapter_count} 章, {len(result.characters)} 个人物, "
            f"{len(result.locations)} 个地点, 耗时 {state.elapsed_time:.1f} 秒, "
            f"tokens: {state.tokens_used}"
        )
        self._emit(
            ProgressPhase.COMPLETED,
            current=result.chapter_count,
            total=result.chapter_count,
            message=f"分析完成: {result.chapter_count} 章",
            elapsed=state.elapsed_time,
        )
        return result

    def last_run_summary(self) -> dict:
        """最近一次运行的摘要"""
        if self.processing_state is None:
            return {}
        return self.processing_state.get_summary()

    async def _analyze_direct(self, text: str) -> MergedBookResult:
        """短文本：一次调用同时得到结构与风格"""
        state = self.processing_state
        state.total_chunks = 1
        self._emit(ProgressPhase.DIRECT, current=0, total=1, message="正在一次性分析全文")

        response = await self.llm_service.call(
            book_import_prompt(text),
            system_prompt=BOOK_IMPORT_SYSTEM_PROMPT,
            options=DIRECT_IMPORT_OPTIONS,
        )
        state.tokens_used += response.tokens_used
        state.processed_chunks = 1

        data = extract_json_object(response.content)
        if data is None:
            logger.warning("全文分析的响应无法解析，整本书作为一章处理")
            state.fallback_chunks = 1
            stripped = text.strip()
            whole = TextChunk(
                index=0,
                content=stripped,
                start_offset=0,
                end_offset=len(text),
                estimated_tokens=estimate_tokens_from_chars(len(stripped)),
            )
            extraction = fallback_result(whole)
            style = StyleProfile.neutral()
        else:
            extraction = ChunkExtractionResult.from_dict(0, data)
            style_data = data.get("styleAnalysis")
            if isinstance(style_data, dict):
                style = StyleProfile.from_dict(style_data)
            else:
                logger.info("响应中没有风格分析，使用中性默认值")
                style = StyleProfile.neutral()

        self._emit(ProgressPhase.MERGING, message="正在整理结果")
        return merge_chunk_results([extraction]).with_style(style)

    async def _analyze_chunked(self, text: str) -> MergedBookResult:
        """长文本：分块 -> 分批提取 -> 合并 -> 风格分析"""
        state = self.processing_state
        self._emit(ProgressPhase.SPLITTING, message="正在分割文本")

        chunks = self.splitter.split(text)
        if not chunks:
            raise ProcessingError("未检测到可处理的内容", phase=ProgressPhase.SPLITTING.value)
        state.total_chunks = len(chunks)
        self._emit(
            ProgressPhase.SPLIT_DONE,
            current=len(chunks),
            total=len(chunks),
            message=f"文本已分割为 {len(chunks)} 个块",
        )

        extractor = ChunkExtractor(self.llm_service)
        scheduler = BatchScheduler(extractor, self.processing_config.parallel_limit)
        try:
            results = await scheduler.run_all(chunks, on_progress=self._on_scheduler_progress)
        finally:
            state.tokens_used += extractor.tokens_used
            state.fallback_chunks = extractor.fallback_count

        self._emit(ProgressPhase.MERGING, message="正在合并各块结果")
        merged = merge_chunk_results(results)

        self._emit(ProgressPhase.STYLE, message="正在分析写作风格")
        analyzer = StyleAnalyzer(self.llm_service, self.processing_config.style_sample_chars)
        try:
            style = await analyzer.analyze_style(text)
        finally:
            state.tokens_used += analyzer.tokens_used

        return merged.with_style(style)

    def _on_scheduler_progress(self, event: ProgressEvent) -> None:
        if event.phase == ProgressPhase.CHUNK_DONE:
            self.processing_state.processed_chunks = event.current
        self._notify(event)

    def _fail(self, error: str) -> None:
        self.processing_state.fail(error)
        logger.error(f"书籍分析失败: {error}")
        self._emit(ProgressPhase.FAILED, message=error, elapsed=self.processing_state.elapsed_time)

    def _emit(
        self,
        phase: ProgressPhase,
        current: int = 0,
        total: int = 0,
        message: str = "",
        elapsed: float | None = None,
    ) -> None:
        self._notify(ProgressEvent(
            phase=phase, current=current, total=total, message=message, elapsed=elapsed
        ))

    def _notify(self, event: ProgressEvent) -> None:
        """向外部回调当前进度，回调出错不影响主流程"""
        if self.processing_state is not None and event.phase != ProgressPhase.CHUNK_DONE:
            self.processing_state.current_phase = event.phase
        if not self.progress_callback:
            return
        try:
            self.progress_callback(event)
        except Exception as e:
            logger.debug(f"进度回调执行失败: {e}")
