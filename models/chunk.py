"""
文本块相关的数据模型
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TextChunk:
    """文本块模型

    ``[start_offset, end_offset)`` 是原文中被该块消耗的区间，
    ``content`` 为该区间去除首尾空白后的内容。
    """

    index: int
    content: str
    start_offset: int
    end_offset: int
    estimated_tokens: int
    break_type: str = "end"

    def __str__(self) -> str:
        return (
            f"TextChunk(index={self.index}, chars={len(self.content)}, "
            f"tokens~{self.estimated_tokens}, break={self.break_type})"
        )

    @property
    def length(self) -> int:
        return self.end_offset - self.start_offset
