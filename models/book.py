"""
书籍分析结果相关的数据模型

模型响应是不可信的文本，所以所有 ``from_dict`` 都是宽松解析：
缺失字段取空值，类型不符的条目直接丢弃。
"""

from dataclasses import dataclass, field, replace
from typing import Any


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class ChapterDraft:
    """单个块中提取出的章节，章节号只在块内有效"""

    chapter_number: int
    title: str
    content: str
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "chapterNumber": self.chapter_number,
            "title": self.title,
            "content": self.content,
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChapterDraft":
        return cls(
            chapter_number=_as_int(data.get("chapterNumber")),
            title=_as_str(data.get("title")),
            content=_as_str(data.get("content")),
            summary=_as_str(data.get("summary")),
        )


@dataclass
class Chapter(ChapterDraft):
    """合并后的章节，chapter_number 为全书范围内的连续编号（从1开始）"""

    @classmethod
    def from_draft(cls, draft: ChapterDraft, chapter_number: int) -> "Chapter":
        return cls(
            chapter_number=chapter_number,
            title=draft.title,
            content=draft.content,
            summary=draft.summary,
        )


@dataclass
class CharacterDraft:
    """人物模型"""

    name: str
    description: str = ""
    traits: list[str] = field(default_factory=list)

    def copy(self) -> "CharacterDraft":
        return replace(self, traits=list(self.traits))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "traits": list(self.traits)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CharacterDraft":
        return cls(
            name=_as_str(data.get("name")),
            description=_as_str(data.get("description")),
            traits=[_as_str(t) for t in _as_list(data.get("traits")) if t is not None],
        )


@dataclass
class LocationDraft:
    """地点模型"""

    name: str
    description: str = ""
    type: str = "other"

    def copy(self) -> "LocationDraft":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "type": self.type}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LocationDraft":
        return cls(
            name=_as_str(data.get("name")),
            description=_as_str(data.get("description")),
            type=_as_str(data.get("type")) or "other",
        )


@dataclass
class StyleProfile:
    """写作风格画像"""

    tone: str
    pov: str
    tense: str
    description_density: str
    dialogue_style: str

    @classmethod
    def neutral(cls) -> "StyleProfile":
        """无法解析模型响应时使用的中性默认值"""
        return cls(
            tone="Неутрален",
            pov="third-omniscient",
            tense="past",
            description_density="moderate",
            dialogue_style="Стандартен диалог",
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "tone": self.tone,
            "pov": self.pov,
            "tense": self.tense,
            "descriptionDensity": self.description_density,
            "dialogueStyle": self.dialogue_style,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StyleProfile":
        """从模型返回的JSON构建，缺失或空白字段使用中性默认值补齐"""
        default = cls.neutral()

        def pick(key: str, fallback: str) -> str:
            value = _as_str(data.get(key)).strip()
            return value or fallback

        return cls(
            tone=pick("tone", default.tone),
            pov=pick("pov", default.pov),
            tense=pick("tense", default.tense),
            description_density=pick("descriptionDensity", default.description_density),
            dialogue_style=pick("dialogueStyle", default.dialogue_style),
        )


@dataclass
class ChunkExtractionResult:
    """单个文本块的结构化提取结果，chunk_index 是合并时的排序键"""

    chunk_index: int
    chapters: list[ChapterDraft] = field(default_factory=list)
    characters: list[CharacterDraft] = field(default_factory=list)
    locations: list[LocationDraft] = field(default_factory=list)

    @classmethod
    def from_dict(cls, chunk_index: int, data: dict[str, Any]) -> "ChunkExtractionResult":
        """从模型返回的JSON对象构建（宽松解析）"""
        chapters = [
            ChapterDraft.from_dict(item)
            for item in _as_list(data.get("chapters"))
            if isinstance(item, dict)
        ]
        characters = [
            CharacterDraft.from_dict(item)
            for item in _as_list(data.get("characters"))
            if isinstance(item, dict)
        ]
        locations = [
            LocationDraft.from_dict(item)
            for item in _as_list(data.get("locations"))
            if isinstance(item, dict)
        ]
        return cls(
            chunk_index=chunk_index,
            chapters=chapters,
            characters=[c for c in characters if c.name.strip()],
            locations=[loc for loc in locations if loc.name.strip()],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunkIndex": self.chunk_index,
            "chapters": [c.to_dict() for c in self.chapters],
            "characters": [c.to_dict() for c in self.characters],
            "locations": [loc.to_dict() for loc in self.locations],
        }


@dataclass
class MergedBookResult:
    """整本书的最终分析结果，交给项目创建逻辑使用"""

    chapters: list[Chapter] = field(default_factory=list)
    characters: list[CharacterDraft] = field(default_factory=list)
    locations: list[LocationDraft] = field(default_factory=list)
    style_analysis: StyleProfile | None = None

    @property
    def chapter_count(self) -> int:
        return len(self.chapters)

    def with_style(self, style: StyleProfile) -> "MergedBookResult":
        return replace(self, style_analysis=style)

    def to_dict(self) -> dict[str, Any]:
        return {
            "chapters": [c.to_dict() for c in self.chapters],
            "characters": [c.to_dict() for c in self.characters],
            "locations": [loc.to_dict() for loc in self.locations],
            "styleAnalysis": self.style_analysis.to_dict() if self.style_analysis else None,
        }
