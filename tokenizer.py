"""
Token计数器模块
使用tiktoken库计算文本的token数量
"""
import logging
import math

import tiktoken

from exceptions import EncodingError

logger = logging.getLogger(__name__)

# 估算时使用的平均字符数/token
CHARS_PER_TOKEN = 4

# 全局编码器实例
_encoder: tiktoken.Encoding | None = None


def get_encoder() -> tiktoken.Encoding:
    """获取编码器实例（单例模式）"""
    global _encoder
    if _encoder is None:
        try:
            _encoder = tiktoken.get_encoding("cl100k_base")
            logger.debug("初始化tiktoken编码器: cl100k_base")
        except Exception as e:
            logger.error(f"初始化编码器失败: {e}")
            raise EncodingError(f"无法初始化token编码器: {str(e)}") from e
    return _encoder


def count_tokens(text: str) -> int:
    """
    计算文本的token数量

    Args:
        text: 要计算的文本

    Returns:
        int: token数量

    Raises:
        EncodingError: 编码失败
    """
    if not isinstance(text, str):
        raise ValueError("输入必须是字符串")

    if not text:
        return 0

    try:
        encoder = get_encoder()
        return len(encoder.encode(text, disallowed_special=()))
    except Exception as e:
        logger.error(f"计算token失败: {e}")
        raise EncodingError(f"无法计算token数量: {str(e)}") from e


def estimate_tokens_from_chars(char_count: int) -> int:
    """按字符数粗略估算token数（向上取整）"""
    if char_count <= 0:
        return 0
    return math.ceil(char_count / CHARS_PER_TOKEN)
