"""
文本分割器模块
将整本书的文本按自然边界切分成适合模型处理的块
"""

import logging
import re
from collections import Counter
from collections.abc import Callable

from config import ProcessingConfig, get_processing_config
from models.chunk import TextChunk
from tokenizer import estimate_tokens_from_chars

logger = logging.getLogger(__name__)

# 章节标题模式，按优先级排列；匹配从换行符开始，切分点落在该换行符上
HEADING_PATTERNS = [
    re.compile(r"\n[ \t]*(?:Глава|Част)[ \t]+[\dIVXLCDM]+\b[^\n]*", re.IGNORECASE),  # Глава N
    re.compile(r"\n[ \t]*(?:Chapter|Part)[ \t]+[\dIVXLCDM]+\b[^\n]*", re.IGNORECASE),  # Chapter N
    re.compile(r"\n[ \t]*[\dIVXLCDM]+[ \t]*[.)][^\n]*"),  # "1." / "IV)"
    re.compile(r"\n[ \t]*(?:={3,}|-{3,}|\*{3,})[ \t]*(?=\n)"),  # 分隔线
]

BreakFinder = Callable[[str, int, int], int | None]


class TextSplitter:
    """智能文本分割器

    对每个预期切分点（当前位置 + target_size），在目标点附近的窗口中
    依次尝试：章节标题 > 空行（段落）> 换行 > 空格。都找不到时在目标点硬切。
    """

    def __init__(
        self,
        target_size: int | None = None,
        min_size: int | None = None,
        search_back: int | None = None,
        search_forward: int | None = None,
        heading_forward: int | None = None,
    ):
        config = get_processing_config()
        self.target_size = target_size if target_size is not None else config.target_chunk_chars
        self.min_size = min_size if min_size is not None else config.min_chunk_chars
        self.search_back = search_back if search_back is not None else config.search_back_chars
        self.search_forward = (
            search_forward if search_forward is not None else config.search_forward_chars
        )
        self.heading_forward = (
            heading_forward if heading_forward is not None else config.heading_forward_chars
        )

        if self.target_size <= 0 or self.min_size <= 0:
            raise ValueError("块大小必须大于0")
        if self.min_size > self.target_size:
            raise ValueError("最小块大小不能大于目标块大小")

        # 按优先级排列的切分策略
        self.strategies: list[tuple[str, BreakFinder]] = [
            ("chapter", self._find_heading_break),
            ("paragraph", self._find_last("\n\n")),
            ("line", self._find_last("\n")),
            ("word", self._find_last(" ")),
        ]

    @classmethod
    def from_config(cls, config: ProcessingConfig) -> "TextSplitter":
        """按给定的处理配置创建分割器"""
        return cls(
            target_size=config.target_chunk_chars,
            min_size=config.min_chunk_chars,
            search_back=config.search_back_chars,
            search_forward=config.search_forward_chars,
            heading_forward=config.heading_forward_chars,
        )

    def split(self, text: str) -> list[TextChunk]:
        """
        分割文本为有序的块列表

        Args:
            text: 要分割的文本

        Returns:
            List[TextChunk]: 文本块列表；空文本或纯空白文本返回空列表
        """
        if not text or not text.strip():
            return []

        length = len(text)
        chunks: list[TextChunk] = []
        position = self._skip_whitespace(text, 0)

        while position < length:
            target = position + self.target_size

            if length <= target + self.search_forward:
                # 剩余内容可以整体放入当前块，避免产生过小的尾块
                end, break_type = length, "end"
            else:
                end, break_type = self._find_break(text, position, target)

            content = text[position:end].strip()
            if content:
                chunks.append(
                    TextChunk(
                        index=len(chunks),
                        content=content,
                        start_offset=position,
                        end_offset=end,
                        estimated_tokens=estimate_tokens_from_chars(len(content)),
                        break_type=break_type,
                    )
                )

            position = self._skip_whitespace(text, end)

        breaks = Counter(chunk.break_type for chunk in chunks)
        logger.info(f"文本分割完成，共 {len(chunks)} 个块，切分方式: {dict(breaks)}")
        return chunks

    def _find_break(self, text: str, position: int, target: int) -> tuple[int, str]:
        """在目标点附近寻找最佳切分点"""
        for name, finder in self.strategies:
            cut = finder(text, position, target)
            if cut is not None:
                logger.debug(f"块起点 {position}: 在 {cut} 处按 {name} 切分")
                return cut, name

        logger.warning(f"块起点 {position}: 窗口内未找到自然边界，在 {target} 处硬切")
        return target, "hard"

    def _window(self, position: int, target: int, forward: int, length: int) -> tuple[int, int]:
        start = max(position, target - self.search_back)
        end = min(length, target + forward)
        return start, end

    def _find_heading_break(self, text: str, position: int, target: int) -> int | None:
        """按模式顺序查找章节标题，每个模式取窗口内最早的可接受匹配"""
        start, end = self._window(position, target, self.heading_forward, len(text))
        min_cut = position + self.min_size

        for pattern in HEADING_PATTERNS:
            for match in pattern.finditer(text, start, end):
                if match.start() >= min_cut:
                    return match.start()
        return None

    def _find_last(self, separator: str) -> BreakFinder:
        """生成一个查找窗口内最后一个分隔符的策略"""

        def finder(text: str, position: int, target: int) -> int | None:
            start, end = self._window(position, target, self.search_forward, len(text))
            cut = text.rfind(separator, start, end)
            if cut != -1 and cut >= position + self.min_size:
                return cut
            return None

        return finder

    @staticmethod
    def _skip_whitespace(text: str, position: int) -> int:
        length = len(text)
        while position < length and text[position].isspace():
            position += 1
        return position

    def estimate_chunk_count(self, text: str) -> int:
        """
        估算文本会被分割成多少块

        Args:
            text: 文本内容

        Returns:
            int: 估算的块数
        """
        stripped = len(text.strip())
        if stripped == 0:
            return 0
        return max(1, (stripped + self.target_size - 1) // self.target_size)


# 全局分割器实例
_splitter: TextSplitter | None = None


def get_splitter() -> TextSplitter:
    """获取分割器实例（单例模式）"""
    global _splitter
    if _splitter is None:
        _splitter = TextSplitter()
    return _splitter


def chunk_text(text: str) -> list[TextChunk]:
    """使用默认配置分割文本"""
    return get_splitter().split(text)
