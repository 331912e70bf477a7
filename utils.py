"""
通用工具模块
包含日志配置、LLM响应中的JSON提取、原子文件操作等实用功能
"""
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

# 日志配置函数
_logging_configured = False

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def setup_logging(level=None, log_file: str | None = "book_import.log"):
    """统一配置日志系统，避免重复配置

    Args:
        level: 日志级别，默认从环境变量 LOG_LEVEL 读取，若未设置则使用 INFO
        log_file: 日志文件路径，为 None 时只输出到控制台
    """
    global _logging_configured
    if _logging_configured:
        return

    # 支持通过环境变量控制日志级别
    if level is None:
        level_str = os.getenv("LOG_LEVEL", "INFO").upper()
        level = getattr(logging, level_str, logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,  # 强制重新配置，即使已经配置过
    )
    _logging_configured = True


logger = logging.getLogger(__name__)


def extract_json_object(response: str | None) -> dict[str, Any] | None:
    """从模型响应中定位并解析一个JSON对象

    响应中的JSON前后可能带有说明文字或代码块标记。
    找不到、解析失败或顶层不是对象时返回 None。
    """
    if not response:
        return None

    try:
        data = json.loads(response.strip())
    except (json.JSONDecodeError, ValueError):
        match = _JSON_OBJECT_RE.search(response)
        if not match:
            return None
        try:
            data = json.loads(match.group())
        except (json.JSONDecodeError, ValueError):
            return None

    return data if isinstance(data, dict) else None


def atomic_write_json(file_path: str | Path, data: Any, indent: int = 2) -> None:
    """原子性写入JSON文件

    Args:
        file_path: 目标文件路径
        data: 要写入的数据
        indent: JSON缩进

    Raises:
        IOError: 文件操作失败
    """
    file_path = Path(file_path)

    # 确保目录存在
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # 写入临时文件
    temp_fd, temp_path = tempfile.mkstemp(
        suffix=".tmp", prefix=file_path.name + "_", dir=file_path.parent
    )

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=indent)
            f.flush()
            os.fsync(f.fileno())  # 强制写入磁盘

        # 原子性重命名
        os.replace(temp_path, file_path)
        logger.debug(f"原子性写入成功: {file_path}")

    except Exception as e:
        # 清理临时文件
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        logger.error(f"写入文件失败: {file_path}, 错误: {e}")
        raise


def decode_text(raw: bytes, encodings: list[str]) -> tuple[str, str]:
    """按顺序尝试多种编码解码字节内容

    Returns:
        Tuple[str, str]: (文本, 实际使用的编码)

    Raises:
        UnicodeDecodeError: 所有编码都失败
    """
    last_error: UnicodeDecodeError | None = None
    for enc in encodings:
        try:
            return raw.decode(enc), enc
        except UnicodeDecodeError as e:
            last_error = e
            logger.debug(f"编码 {enc} 失败: {e}")

    raise UnicodeDecodeError(
        last_error.encoding if last_error else "unknown",
        raw,
        last_error.start if last_error else 0,
        last_error.end if last_error else 1,
        f"无法使用任何编码读取文件: {', '.join(encodings)}",
    )


def safe_read_text(file_path: str | Path, encodings: list[str]) -> tuple[str, str]:
    """按顺序尝试多种编码读取文本文件

    Returns:
        Tuple[str, str]: (文件内容, 实际使用的编码)

    Raises:
        FileNotFoundError: 文件不存在
        UnicodeDecodeError: 所有编码都失败
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"文件不存在: {file_path}")

    content, encoding = decode_text(file_path.read_bytes(), encodings)
    logger.debug(f"成功读取文件 {file_path}，使用编码: {encoding}")
    return content, encoding


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """截断文本（用于日志输出）"""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)] + suffix
