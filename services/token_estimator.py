"""
Token 预测服务
在真正调用LLM之前估算一本书的处理路径、分块数量和 token 消耗。
"""
from typing import Any

from config import ProcessingConfig, get_processing_config
from services.book_analysis_service import needs_chunked_processing
from splitter import TextSplitter
from tokenizer import count_tokens


def estimate_tokens(text: str, processing_config: ProcessingConfig | None = None) -> dict[str, Any]:
    """
    估算 token 消耗。
    Returns:
        {
            "total_tokens": int,
            "path": "direct" | "chunked",
            "chunk_count": int,
            "chunk_tokens": int,
            "llm_calls": int,
        }
    """
    config = processing_config or get_processing_config()
    total_tokens = count_tokens(text)

    if not needs_chunked_processing(text, config.direct_analysis_threshold):
        return {
            "total_tokens": total_tokens,
            "path": "direct",
            "chunk_count": 1 if text.strip() else 0,
            "chunk_tokens": total_tokens,
            "llm_calls": 1 if text.strip() else 0,
        }

    chunks = TextSplitter.from_config(config).split(text)
    chunk_tokens = sum(count_tokens(chunk.content) for chunk in chunks)

    return {
        "total_tokens": total_tokens,
        "path": "chunked",
        "chunk_count": len(chunks),
        "chunk_tokens": chunk_tokens,
        # 每块一次提取，外加一次风格分析
        "llm_calls": len(chunks) + 1,
    }
