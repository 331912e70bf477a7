"""
服务层模块
包含书籍分析流水线的各个业务服务
"""

from .batch_scheduler import BatchScheduler
from .book_analysis_service import BookAnalysisService, needs_chunked_processing
from .chunk_extractor import ChunkExtractor
from .file_service import FileService
from .llm_service import (
    GeminiService,
    GenerationOptions,
    LLMResponse,
    LLMService,
    OpenAIService,
    create_llm_service,
)
from .style_analyzer import StyleAnalyzer

__all__ = [
    "LLMService",
    "LLMResponse",
    "GenerationOptions",
    "OpenAIService",
    "GeminiService",
    "create_llm_service",
    "ChunkExtractor",
    "BatchScheduler",
    "StyleAnalyzer",
    "BookAnalysisService",
    "needs_chunked_processing",
    "FileService",
]
