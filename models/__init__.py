"""
数据模型模块
定义项目中使用的各种数据结构
"""

from .book import (
    Chapter,
    ChapterDraft,
    CharacterDraft,
    ChunkExtractionResult,
    LocationDraft,
    MergedBookResult,
    StyleProfile,
)
from .chunk import TextChunk
from .processing_state import ProcessingState, ProgressEvent, ProgressPhase

__all__ = [
    "TextChunk",
    "ChapterDraft",
    "Chapter",
    "CharacterDraft",
    "LocationDraft",
    "StyleProfile",
    "ChunkExtractionResult",
    "MergedBookResult",
    "ProcessingState",
    "ProgressEvent",
    "ProgressPhase",
]
