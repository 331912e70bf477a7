"""
文本块提取服务
对单个文本块调用LLM，解析出章节、人物和地点
"""
import logging

from models.book import ChapterDraft, ChunkExtractionResult
from models.chunk import TextChunk
from prompts import CHUNK_SYSTEM_PROMPT, chunk_extraction_prompt
from services.llm_service import CHUNK_EXTRACTION_OPTIONS, GenerationOptions, LLMService
from utils import extract_json_object, truncate_text

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "Автоматично разделена част"


def fallback_result(chunk: TextChunk) -> ChunkExtractionResult:
    """模型响应无法解析时的兜底结果：整块文本作为一章，不含人物与地点"""
    return ChunkExtractionResult(
        chunk_index=chunk.index,
        chapters=[
            ChapterDraft(
                chapter_number=chunk.index + 1,
                title=f"Част {chunk.index + 1}",
                content=chunk.content,
                summary=FALLBACK_SUMMARY,
            )
        ],
    )


class ChunkExtractor:
    """单块结构化提取器

    内容层面的失败（没有JSON、JSON损坏、顶层不是对象）在这里被吸收为兜底结果；
    传输层的 APIError 原样向上传播。
    """

    def __init__(self, llm_service: LLMService, options: GenerationOptions | None = None):
        self.llm_service = llm_service
        self.options = options or CHUNK_EXTRACTION_OPTIONS
        self.tokens_used = 0
        self.fallback_count = 0

    async def extract(
        self, chunk: TextChunk, is_first: bool, total_chunks: int
    ) -> ChunkExtractionResult:
        """提取单个块"""
        prompt = chunk_extraction_prompt(chunk.content, chunk.index, total_chunks, is_first)
        response = await self.llm_service.call(
            prompt,
            system_prompt=CHUNK_SYSTEM_PROMPT,
            options=self.options,
            chunk_id=chunk.index,
        )
        self.tokens_used += response.tokens_used

        data = extract_json_object(response.content)
        if data is None:
            self.fallback_count += 1
            logger.warning(
                f"块 {chunk.index} 的响应中没有可解析的JSON，使用兜底结果: "
                f"{truncate_text(response.content or '', 80)!r}"
            )
            return fallback_result(chunk)

        result = ChunkExtractionResult.from_dict(chunk.index, data)
        logger.debug(
            f"块 {chunk.index} 提取完成: {len(result.chapters)} 章, "
            f"{len(result.characters)} 个人物, {len(result.locations)} 个地点"
        )
        return result
