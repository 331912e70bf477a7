"""
批量调度服务
按固定批大小分批并发提取文本块，批与批之间严格串行
"""
import asyncio
import logging
from collections.abc import Callable

from exceptions import ConfigurationError
from models.book import ChunkExtractionResult
from models.chunk import TextChunk
from models.processing_state import ProgressEvent, ProgressPhase
from services.chunk_extractor import ChunkExtractor

logger = logging.getLogger(__name__)

ProgressHandler = Callable[[ProgressEvent], None]


class BatchScheduler:
    """批量调度器

    同一时刻最多有 ``batch_size`` 个LLM调用在进行；
    下一批只有在上一批全部完成后才开始。
    """

    def __init__(self, extractor: ChunkExtractor, batch_size: int = 5):
        if batch_size <= 0:
            raise ConfigurationError(f"批大小必须大于0，当前值: {batch_size}")
        self.extractor = extractor
        self.batch_size = batch_size

    def batches(self, chunks: list[TextChunk]) -> list[list[TextChunk]]:
        """把块按顺序切成连续的批"""
        return [
            chunks[i:i + self.batch_size]
            for i in range(0, len(chunks), self.batch_size)
        ]

    async def run_all(
        self,
        chunks: list[TextChunk],
        on_progress: ProgressHandler | None = None,
    ) -> list[ChunkExtractionResult]:
        """
        提取所有块

        Args:
            chunks: 按顺序排列的文本块
            on_progress: 进度回调

        Returns:
            List[ChunkExtractionResult]: 与输入一一对应的结果（按块顺序）
        """
        emit = on_progress or (lambda event: None)
        total = len(chunks)
        batches = self.batches(chunks)
        results: list[ChunkExtractionResult] = []
        done = 0

        async def run_one(chunk: TextChunk) -> ChunkExtractionResult:
            nonlocal done
            result = await self.extractor.extract(chunk, chunk.index == 0, total)
            done += 1
            emit(ProgressEvent(
                phase=ProgressPhase.CHUNK_DONE,
                current=done,
                total=total,
                message=f"已完成 {done}/{total} 个块",
            ))
            return result

        for batch_no, batch in enumerate(batches, 1):
            emit(ProgressEvent(
                phase=ProgressPhase.EXTRACTING,
                current=batch_no,
                total=len(batches),
                message=f"正在处理第 {batch_no}/{len(batches)} 批 ({len(batch)} 个块)",
            ))
            logger.info(
                f"开始第 {batch_no}/{len(batches)} 批: 块 {batch[0].index}-{batch[-1].index}"
            )
            tasks = [asyncio.create_task(run_one(chunk)) for chunk in batch]
            try:
                batch_results = await asyncio.gather(*tasks)
            except BaseException:
                # 任意一个块的传输错误都会中止整个运行；同批其余调用先取消并等待结束
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
            results.extend(batch_results)

        return results
