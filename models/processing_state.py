"""
处理状态相关的数据模型
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ProgressPhase(str, Enum):
    """流水线阶段"""

    STARTED = "started"
    SPLITTING = "splitting"
    SPLIT_DONE = "split_done"
    DIRECT = "direct"
    EXTRACTING = "extracting"
    CHUNK_DONE = "chunk_done"
    MERGING = "merging"
    STYLE = "style"
    COMPLETED = "completed"
    FAILED = "failed"


# 各阶段在总进度中的位置（百分比）
_EXTRACT_START = 10.0
_EXTRACT_SPAN = 75.0
_FIXED_PERCENT = {
    ProgressPhase.STARTED: 0.0,
    ProgressPhase.SPLITTING: 5.0,
    ProgressPhase.SPLIT_DONE: _EXTRACT_START,
    ProgressPhase.DIRECT: 20.0,
    ProgressPhase.MERGING: 85.0,
    ProgressPhase.STYLE: 90.0,
    ProgressPhase.COMPLETED: 100.0,
}


@dataclass(frozen=True)
class ProgressEvent:
    """结构化的进度事件

    回调方根据 ``phase`` / ``current`` / ``total`` 计算进度，
    ``message`` 只用于展示。
    """

    phase: ProgressPhase
    current: int = 0
    total: int = 0
    message: str = ""
    elapsed: float | None = None

    @property
    def percent(self) -> float | None:
        """估算的总进度百分比

        失败事件和批次开始事件返回 None；提取阶段的进度只由 CHUNK_DONE 推进。
        """
        if self.phase in (ProgressPhase.FAILED, ProgressPhase.EXTRACTING):
            return None
        if self.phase in _FIXED_PERCENT:
            return _FIXED_PERCENT[self.phase]

        if not self.total:
            return _EXTRACT_START
        ratio = min(self.current / self.total, 1.0)
        return round(_EXTRACT_START + _EXTRACT_SPAN * ratio, 1)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "phase": self.phase.value,
            "current": self.current,
            "total": self.total,
            "message": self.message,
            "percent": self.percent,
        }
        if self.elapsed is not None:
            payload["elapsed"] = round(self.elapsed, 2)
        return payload


@dataclass
class ProcessingState:
    """单次流水线运行的状态"""

    text_length: int
    mode: str = "pending"  # pending|direct|chunked
    total_chunks: int = 0
    processed_chunks: int = 0
    fallback_chunks: int = 0
    tokens_used: int = 0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: datetime | None = None
    current_phase: ProgressPhase = ProgressPhase.STARTED
    errors: list[str] = field(default_factory=list)

    @property
    def elapsed_time(self) -> float:
        """计算已用时间（秒）"""
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()

    @property
    def progress_percentage(self) -> float:
        """计算块处理进度百分比"""
        if self.total_chunks == 0:
            return 0.0
        return (self.processed_chunks / self.total_chunks) * 100

    def add_error(self, error: str) -> None:
        """添加错误信息"""
        self.errors.append(f"[{datetime.now().strftime('%H:%M:%S')}] {error}")

    def complete(self) -> None:
        """标记处理完成"""
        self.end_time = datetime.now()
        self.current_phase = ProgressPhase.COMPLETED

    def fail(self, error: str) -> None:
        """标记处理失败"""
        self.end_time = datetime.now()
        self.current_phase = ProgressPhase.FAILED
        self.add_error(error)

    def get_summary(self) -> dict[str, Any]:
        """获取处理摘要"""
        return {
            "text_length": self.text_length,
            "mode": self.mode,
            "total_chunks": self.total_chunks,
            "processed_chunks": self.processed_chunks,
            "fallback_chunks": self.fallback_chunks,
            "tokens_used": self.tokens_used,
            "progress_percentage": round(self.progress_percentage, 2),
            "elapsed_time": round(self.elapsed_time, 2),
            "current_phase": self.current_phase.value,
            "errors_count": len(self.errors),
        }
