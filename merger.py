"""
结果合并模块
将各文本块的提取结果按块顺序合并为整本书的结构
"""
import logging
from collections.abc import Iterable

from models.book import (
    Chapter,
    ChapterDraft,
    CharacterDraft,
    ChunkExtractionResult,
    LocationDraft,
    MergedBookResult,
)

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    """人物/地点的去重键：去除首尾空白并转小写"""
    return name.strip().lower()


def renumber_chapters(drafts: Iterable[ChapterDraft]) -> list[Chapter]:
    """按顺序重新编号，模型给出的块内章节号一律忽略"""
    return [Chapter.from_draft(draft, number) for number, draft in enumerate(drafts, 1)]


def merge_characters(characters: Iterable[CharacterDraft]) -> list[CharacterDraft]:
    """
    按规范化名称合并人物

    首次出现的条目作为基础（保留其名称写法）；之后同名条目的特征取并集，
    描述只在严格更长时替换。
    """
    merged: dict[str, CharacterDraft] = {}
    for character in characters:
        key = normalize_name(character.name)
        existing = merged.get(key)
        if existing is None:
            merged[key] = character.copy()
            continue

        for trait in character.traits:
            if trait not in existing.traits:
                existing.traits.append(trait)
        if len(character.description) > len(existing.description):
            existing.description = character.description

    return list(merged.values())


def merge_locations(locations: Iterable[LocationDraft]) -> list[LocationDraft]:
    """按规范化名称合并地点

    后出现的描述严格更长时整条替换（名称写法也随之更新），长度相同保留先出现的。
    """
    merged: dict[str, LocationDraft] = {}
    for location in locations:
        key = normalize_name(location.name)
        existing = merged.get(key)
        if existing is None:
            merged[key] = location.copy()
        elif len(location.description) > len(existing.description):
            merged[key] = location.copy()

    return list(merged.values())


def merge_chunk_results(results: Iterable[ChunkExtractionResult]) -> MergedBookResult:
    """
    合并所有块的提取结果（不含风格分析）

    Args:
        results: 各块的提取结果，顺序任意

    Returns:
        MergedBookResult: 章节连续编号、人物与地点去重后的结果
    """
    ordered = sorted(results, key=lambda r: r.chunk_index)

    chapters = renumber_chapters(ch for r in ordered for ch in r.chapters)
    characters = merge_characters(c for r in ordered for c in r.characters)
    locations = merge_locations(loc for r in ordered for loc in r.locations)

    logger.info(
        f"合并 {len(ordered)} 个块: {len(chapters)} 章, "
        f"{len(characters)} 个人物, {len(locations)} 个地点"
    )
    return MergedBookResult(chapters=chapters, characters=characters, locations=locations)
