"""
LLM提示词模板模块
定义书籍导入流水线使用的各种提示词（目标语言为保加利亚语）
"""
import os

CHUNK_SYSTEM_PROMPT = (
    "You are a book analysis expert for Bulgarian literature. "
    "Extract structural information quickly and accurately. Return ONLY valid JSON."
)

STYLE_SYSTEM_PROMPT = (
    "You are a literary style analyst for Bulgarian fiction. Return ONLY valid JSON."
)

_CHAPTERS_SCHEMA = """  "chapters": [
    {
      "chapterNumber": <number>,
      "title": "<chapter title if present, otherwise a short descriptive title in Bulgarian>",
      "content": "<full chapter text>",
      "summary": "<brief summary in Bulgarian>"
    }
  ],
  "characters": [
    {
      "name": "<character name>",
      "description": "<brief description in Bulgarian>",
      "traits": ["trait1", "trait2"]
    }
  ],
  "locations": [
    {
      "name": "<location name>",
      "description": "<description in Bulgarian>",
      "type": "city|village|building|nature|other"
    }
  ]"""

_STYLE_SCHEMA = """  "tone": "<emotional tone, described in Bulgarian>",
  "pov": "first|third-limited|third-omniscient",
  "tense": "past|present",
  "descriptionDensity": "sparse|moderate|rich",
  "dialogueStyle": "<dialogue style, described in Bulgarian>"
"""

BOOK_IMPORT_SYSTEM_PROMPT = f"""You are a book analysis expert specializing in Bulgarian literature. Analyze the provided book text and extract structured information.

ANALYSIS REQUIREMENTS:
1. Identify chapters: look for headings such as "Глава", "ГЛАВА", Roman numerals (I, II, III), numbers (1, 2, 3) or clear section breaks
2. Extract every character name and describe each one from context
3. Extract every location name and describe each one from context
4. Analyze the writing style (tone, POV, tense, description density, dialogue)

OUTPUT FORMAT: return valid JSON with exactly this structure:
{{
{_CHAPTERS_SCHEMA},
  "styleAnalysis": {{
{_STYLE_SCHEMA}  }}
}}

IMPORTANT:
- All descriptions and summaries must be in Bulgarian
- If there are no clear chapters, split by logical sections or roughly every 2000 words
- Include ALL text in chapters, do not skip any content
- Be thorough with character and location extraction"""

DEFAULT_CHUNK_PROMPT_TEMPLATE = """You are analyzing part {part} of {total} of a Bulgarian book.

TASK: Extract chapters, characters and locations from this text segment.

{position}

TEXT SEGMENT:
{chunk}

OUTPUT FORMAT - return ONLY valid JSON:
{
{schema}
}

IMPORTANT:
- Include ALL text from this segment in chapters, do not skip content
- If there are no clear chapter breaks, treat the whole segment as one chapter
- Extract ALL character and location names you find
- All descriptions in Bulgarian"""


def _load_template_from_env() -> str:
    """获取由环境变量 CHUNK_PROMPT_TEMPLATE 配置的模板，支持使用 \\n 表示换行。"""
    template = os.getenv("CHUNK_PROMPT_TEMPLATE")
    if not template:
        return DEFAULT_CHUNK_PROMPT_TEMPLATE
    return template.replace("\\n", "\n")


def _apply_template(template: str, values: dict[str, str]) -> str:
    """填充模板中的占位符，确保原文内容被插入。

    使用字符串替换而不是 str.format，自定义模板中的花括号不需要转义。
    """
    filled = template
    for key, value in values.items():
        if key == "chunk":
            continue
        filled = filled.replace("{" + key + "}", value)

    # 原文最后插入，避免正文里恰好出现占位符文本
    if "{chunk}" in filled:
        return filled.replace("{chunk}", values["chunk"], 1)
    return f"{filled}\n\nTEXT SEGMENT:\n{values['chunk']}"


def chunk_extraction_prompt(content: str, index: int, total: int, is_first: bool) -> str:
    """
    生成处理单个文本块的提示词

    Args:
        content: 块文本
        index: 块序号（从0开始）
        total: 总块数
        is_first: 是否为全书开头
    """
    part = index + 1
    if is_first:
        position = "This is the BEGINNING of the book."
    else:
        position = f"This is a MIDDLE section (part {part})."

    template = _load_template_from_env()
    return _apply_template(
        template,
        {
            "part": str(part),
            "total": str(total),
            "position": position,
            "schema": _CHAPTERS_SCHEMA,
            "chunk": content,
        },
    )


def style_analysis_prompt(sample: str) -> str:
    """
    生成风格分析的提示词
    """
    return f"""Analyze the writing style of this Bulgarian text sample:

TEXT SAMPLE:
{sample}

OUTPUT FORMAT - return ONLY valid JSON:
{{
{_STYLE_SCHEMA}}}"""


def book_import_prompt(text: str) -> str:
    """
    生成整本书一次性分析的提示词
    """
    return f"Analyze this book:\n\n{text}"
