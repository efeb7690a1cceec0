"""
Taxonomy service backed by the taxonomy spreadsheet.

Loads six tabs together, drops inactive rows, orders each collection by
sort_order and keeps the bundle for a TTL. Lookups join on the immediate
parent id only; resolve_selection validates a whole chain.
"""
import asyncio
import logging
import re
import time
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from creativehub.core.config import settings
from creativehub.core.errors import ValidationError
from creativehub.models.taxonomy import (
    ArtStyle,
    Chapter,
    Grade,
    ResolvedSelection,
    SelectionIds,
    Subject,
    Subtopic,
    TaxonomySnapshot,
    Topic,
)
from creativehub.services.sheets import SheetCache, get_sheet_cache

logger = logging.getLogger(__name__)

TABS = ("Grades", "Subjects", "Chapters", "Topics", "Subtopics", "ArtStyles")
TRUTHY = {"1", "true", "yes", "y"}

ACRONYMS = {
    "AI", "ML", "NLP", "CV", "RL", "GAN", "LLM", "RAG", "SQL", "API", "HTTP", "GPU", "CPU",
    "UPSC", "SSC", "CBSE", "NCERT", "IIT", "JEE", "NEET", "DNA", "RNA", "3D", "2D",
}
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_ALL_CAPS = re.compile(r"^[A-Z0-9]+$")
_REPEATED_UNDERSCORES = re.compile(r"__+")


def is_truthy(value: Any) -> bool:
    return str(value if value is not None else "").strip().lower() in TRUTHY


def clean(value: Any) -> str:
    return str(value if value is not None else "").strip()


def optional(value: Any) -> Optional[str]:
    text = clean(value)
    return text or None


def to_sort_order(value: Any) -> int:
    try:
        return int(float(clean(value) or 0))
    except (ValueError, OverflowError):
        return 0


def smart_title_case(text: str) -> str:
    """Title Case that keeps known acronyms and tokens already in ALL CAPS"""
    words = []
    for word in (text or "").split():
        core = _NON_ALNUM.sub("", word)
        if core.upper() in ACRONYMS:
            words.append(word.upper())
        elif _ALL_CAPS.match(core):
            words.append(word)
        else:
            lowered = word.lower()
            words.append(lowered[:1].upper() + lowered[1:])
    return " ".join(words)


def generate_title(selection: ResolvedSelection) -> str:
    """SubtopicName_Grade_SubjectCode_ChapterNo_ArtStyle_V1"""
    parts = [
        selection.subtopic.name,
        selection.grade.name,
        selection.subject.code or selection.subject.name,
        selection.chapter.number or "",
        selection.artstyle.name,
        "V1",
    ]
    raw = _REPEATED_UNDERSCORES.sub("_", "_".join(p for p in parts if p))
    segments = ["_".join(smart_title_case(segment).split()) for segment in raw.split("_")]
    return _REPEATED_UNDERSCORES.sub("_", "_".join(s for s in segments if s))


def folder_segments_from(selection: ResolvedSelection) -> List[str]:
    """Drive folder path for an asset; keeps the sheet's casing"""
    return [
        selection.grade.name,
        selection.subject.name,
        selection.chapter.number or selection.chapter.name,
        selection.topic.name,
        selection.subtopic.name,
        selection.artstyle.name,
    ]


def _active(rows: List[Dict[str, str]]) -> List[Dict[str, str]]:
    # A missing is_active column means active; a blank cell does not
    return [r for r in rows if is_truthy(r.get("is_active", "true"))]


def _by_sort_order(items):
    return sorted(items, key=lambda item: item.sort_order)


def build_snapshot(tabs: List[List[Dict[str, str]]], loaded_at: float) -> TaxonomySnapshot:
    grades_r, subjects_r, chapters_r, topics_r, subtopics_r, artstyles_r = [_active(t) for t in tabs]

    grades = [
        Grade(id=clean(r.get("id")), name=clean(r.get("name")), code=optional(r.get("code")),
              sort_order=to_sort_order(r.get("sort_order")))
        for r in grades_r
    ]
    subjects = [
        Subject(id=clean(r.get("id")), grade_id=clean(r.get("grade_id")), name=clean(r.get("name")),
                code=optional(r.get("code")), sort_order=to_sort_order(r.get("sort_order")))
        for r in subjects_r
    ]
    chapters = [
        Chapter(id=clean(r.get("id")), subject_id=clean(r.get("subject_id")), name=clean(r.get("name")),
                number=optional(r.get("number")), sort_order=to_sort_order(r.get("sort_order")))
        for r in chapters_r
    ]
    topics = [
        Topic(id=clean(r.get("id")), chapter_id=clean(r.get("chapter_id")), name=clean(r.get("name")),
              sort_order=to_sort_order(r.get("sort_order")))
        for r in topics_r
    ]
    subtopics = [
        Subtopic(id=clean(r.get("id")), topic_id=clean(r.get("topic_id")), name=clean(r.get("name")),
                 sort_order=to_sort_order(r.get("sort_order")))
        for r in subtopics_r
    ]
    artstyles = [
        ArtStyle(id=clean(r.get("id")), name=clean(r.get("name")),
                 sort_order=to_sort_order(r.get("sort_order")))
        for r in artstyles_r
    ]

    return TaxonomySnapshot(
        grades=_by_sort_order(grades),
        subjects=_by_sort_order(subjects),
        chapters=_by_sort_order(chapters),
        topics=_by_sort_order(topics),
        subtopics=_by_sort_order(subtopics),
        artstyles=_by_sort_order(artstyles),
        loaded_at=loaded_at,
    )


class TaxonomyService:
    """
    Hierarchical lookups over a cached taxonomy snapshot.
    The snapshot is swapped in one assignment on reload.
    """

    def __init__(
        self,
        sheet_cache: SheetCache,
        ttl_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sheet_cache = sheet_cache
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._snapshot: Optional[TaxonomySnapshot] = None

    async def load(self, force: bool = False) -> TaxonomySnapshot:
        snapshot = self._snapshot
        if not force and snapshot is not None and self.clock() - snapshot.loaded_at < self.ttl_seconds:
            return snapshot

        tabs = await asyncio.gather(*(self.sheet_cache.read_sheet(tab) for tab in TABS))
        snapshot = build_snapshot(list(tabs), loaded_at=self.clock())
        self._snapshot = snapshot
        logger.info(
            f"Taxonomy loaded: {len(snapshot.grades)} grades, {len(snapshot.subjects)} subjects, "
            f"{len(snapshot.chapters)} chapters, {len(snapshot.topics)} topics, "
            f"{len(snapshot.subtopics)} subtopics, {len(snapshot.artstyles)} art styles"
        )
        return snapshot

    async def refresh(self) -> TaxonomySnapshot:
        """Reload now, bypassing both the snapshot and the per-tab cache"""
        self.sheet_cache.clear()
        return await self.load(force=True)

    async def get_grades(self) -> List[Grade]:
        return (await self.load()).grades

    async def get_subjects(self, grade_id: str) -> List[Subject]:
        return [s for s in (await self.load()).subjects if s.grade_id == str(grade_id)]

    async def get_chapters(self, subject_id: str) -> List[Chapter]:
        return [c for c in (await self.load()).chapters if c.subject_id == str(subject_id)]

    async def get_topics(self, chapter_id: str) -> List[Topic]:
        return [t for t in (await self.load()).topics if t.chapter_id == str(chapter_id)]

    async def get_subtopics(self, topic_id: str) -> List[Subtopic]:
        return [s for s in (await self.load()).subtopics if s.topic_id == str(topic_id)]

    async def get_art_styles(self) -> List[ArtStyle]:
        return (await self.load()).artstyles

    async def resolve_selection(self, ids: SelectionIds) -> ResolvedSelection:
        """Each level must exist and point at the level resolved before it"""
        t = await self.load()
        grade = next((g for g in t.grades if g.id == ids.grade_id), None)
        subject = next(
            (s for s in t.subjects if s.id == ids.subject_id and s.grade_id == ids.grade_id), None)
        chapter = next(
            (c for c in t.chapters if c.id == ids.chapter_id and c.subject_id == ids.subject_id), None)
        topic = next(
            (o for o in t.topics if o.id == ids.topic_id and o.chapter_id == ids.chapter_id), None)
        subtopic = next(
            (p for p in t.subtopics if p.id == ids.subtopic_id and p.topic_id == ids.topic_id), None)
        artstyle = next((a for a in t.artstyles if a.id == ids.art_style_id), None)

        if not all((grade, subject, chapter, topic, subtopic, artstyle)):
            raise ValidationError("Invalid taxonomy selection")

        return ResolvedSelection(
            grade=grade,
            subject=subject,
            chapter=chapter,
            topic=topic,
            subtopic=subtopic,
            artstyle=artstyle,
        )


@lru_cache()
def get_taxonomy_service() -> TaxonomyService:
    return TaxonomyService(get_sheet_cache(), ttl_seconds=settings.TAXONOMY_CACHE_TTL_SECONDS)
