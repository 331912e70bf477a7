"""
输入验证模块
在进入分析流水线之前检查文件、目录和文本
"""

import codecs
import logging
import os
import re
from pathlib import Path

from exceptions import FileValidationError, InputValidationError

logger = logging.getLogger(__name__)

MANUSCRIPT_EXTENSIONS = [".txt", ".md", ".text"]


def validate_file_path(
    file_path: str | Path,
    allowed_extensions: list | None = None,
    max_size_mb: int | None = None,
) -> Path:
    """验证手稿文件路径

    Args:
        file_path: 文件路径
        allowed_extensions: 允许的扩展名，默认为纯文本手稿格式
        max_size_mb: 最大文件大小（MB）

    Returns:
        Path: 验证后的Path对象

    Raises:
        FileValidationError: 文件验证失败
    """
    if isinstance(file_path, Path):
        file_path = str(file_path)

    if not file_path or not isinstance(file_path, str):
        raise FileValidationError("文件路径不能为空")

    # 检查路径遍历
    if ".." in os.path.normpath(file_path).split(os.sep):
        raise FileValidationError("检测到不安全的路径遍历")

    path_obj = Path(file_path)
    if not path_obj.exists():
        raise FileValidationError(f"文件不存在: {file_path}")
    if not path_obj.is_file():
        raise FileValidationError(f"路径不是文件: {file_path}")

    allowed = allowed_extensions if allowed_extensions is not None else MANUSCRIPT_EXTENSIONS
    ext = path_obj.suffix.lower()
    if allowed and ext not in allowed:
        raise FileValidationError(
            f"不支持的文件格式: {ext or '(无扩展名)'}，目前只支持纯文本: {', '.join(allowed)}"
        )

    if max_size_mb is not None:
        size_mb = path_obj.stat().st_size / (1024 * 1024)
        if size_mb > max_size_mb:
            raise FileValidationError(f"文件过大: {size_mb:.2f}MB. 最大允许: {max_size_mb}MB")

    return path_obj


def validate_output_dir(output_dir: str) -> Path:
    """验证并创建输出目录"""
    if not output_dir or not isinstance(output_dir, str):
        raise FileValidationError("输出目录路径不能为空")

    if ".." in os.path.normpath(output_dir).split(os.sep):
        raise FileValidationError("检测到不安全的路径遍历")

    path_obj = Path(output_dir)
    try:
        path_obj.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        raise FileValidationError(f"没有权限创建目录: {output_dir}") from e
    except OSError as e:
        raise FileValidationError(f"创建目录失败: {output_dir}, 错误: {str(e)}") from e

    return path_obj


def validate_encoding_list(encodings: list) -> list:
    """过滤掉Python不认识的编码名称

    Raises:
        FileValidationError: 没有任何可用编码
    """
    if not encodings or not isinstance(encodings, list):
        raise FileValidationError("编码列表不能为空")

    validated = []
    for encoding in encodings:
        if not isinstance(encoding, str):
            continue
        try:
            codecs.lookup(encoding)
        except LookupError:
            logger.warning(f"忽略未知编码: {encoding}")
            continue
        validated.append(encoding)

    if not validated:
        raise FileValidationError("没有找到有效的编码")

    return validated


def validate_book_text(text: str, min_chars: int = 100, max_chars: int = 800000) -> tuple[str, bool]:
    """检查书籍文本长度

    过短的文本直接拒绝；过长的文本截断到 ``max_chars``。

    Returns:
        Tuple[str, bool]: (可能被截断的文本, 是否发生了截断)

    Raises:
        InputValidationError: 文本为空或有效字符数少于 ``min_chars``
    """
    length = len(text.strip()) if isinstance(text, str) else 0
    if length < min_chars:
        raise InputValidationError(
            f"文本太短或为空，至少需要 {min_chars} 个字符（当前 {length} 个）",
            text_length=length,
            min_chars=min_chars,
        )

    if len(text) > max_chars:
        logger.warning(f"文本长度 {len(text)} 超过上限 {max_chars}，已截断")
        return text[:max_chars], True

    return text, False


def sanitize_filename(filename: str) -> str:
    """清理文件名，移除不安全字符"""
    if not filename:
        return "output"

    # 移除路径分隔符和其他不安全字符
    sanitized = re.sub(r'[<>:"/\\|?*]', "_", filename)

    # 移除控制字符
    sanitized = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", sanitized).strip()

    if len(sanitized) > 255:
        name, ext = os.path.splitext(sanitized)
        sanitized = name[: 255 - len(ext)] + ext

    if not sanitized or sanitized in [".", ".."]:
        sanitized = "output"

    return sanitized
