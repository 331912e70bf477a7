"""
写作风格分析服务
从全书开头、中段和结尾各取一段样本，交给LLM判断写作风格
"""
import logging

from models.book import StyleProfile
from prompts import STYLE_SYSTEM_PROMPT, style_analysis_prompt
from services.llm_service import STYLE_ANALYSIS_OPTIONS, LLMService
from utils import extract_json_object

logger = logging.getLogger(__name__)

SAMPLE_SEPARATOR = "\n\n---\n\n"


class StyleAnalyzer:
    """风格分析器"""

    def __init__(self, llm_service: LLMService, sample_size: int = 8000):
        self.llm_service = llm_service
        self.sample_size = sample_size
        self.tokens_used = 0

    def build_sample(self, text: str) -> str:
        """拼接开头、中段、结尾三段样本；短文本时三段可能重叠"""
        n = self.sample_size
        mid = len(text) // 2
        head = text[:n]
        middle = text[max(mid - n // 2, 0):mid + n // 2]
        tail = text[-n:]
        return SAMPLE_SEPARATOR.join([head, middle, tail])

    async def analyze_style(self, text: str) -> StyleProfile:
        """分析写作风格，响应无法解析时返回中性默认值"""
        sample = self.build_sample(text)
        response = await self.llm_service.call(
            style_analysis_prompt(sample),
            system_prompt=STYLE_SYSTEM_PROMPT,
            options=STYLE_ANALYSIS_OPTIONS,
        )
        self.tokens_used += response.tokens_used

        data = extract_json_object(response.content)
        if data is None:
            logger.warning("风格分析响应无法解析，使用中性默认值")
            return StyleProfile.neutral()

        return StyleProfile.from_dict(data)
