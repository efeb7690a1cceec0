"""
Taxonomy models (grade > subject > chapter > topic > subtopic, plus art styles)

Records are read-only and rebuilt from the taxonomy spreadsheet.
"""
from typing import List, Optional
from pydantic import BaseModel


class TaxonomyNode(BaseModel):
    id: str
    name: str
    sort_order: int = 0
    is_active: bool = True


class Grade(TaxonomyNode):
    code: Optional[str] = None


class Subject(TaxonomyNode):
    grade_id: str
    code: Optional[str] = None


class Chapter(TaxonomyNode):
    subject_id: str
    number: Optional[str] = None


class Topic(TaxonomyNode):
    chapter_id: str


class Subtopic(TaxonomyNode):
    topic_id: str


class ArtStyle(TaxonomyNode):
    pass


class TaxonomySnapshot(BaseModel):
    """All six collections as loaded together"""
    grades: List[Grade]
    subjects: List[Subject]
    chapters: List[Chapter]
    topics: List[Topic]
    subtopics: List[Subtopic]
    artstyles: List[ArtStyle]
    loaded_at: float


class SelectionIds(BaseModel):
    """A full path through the hierarchy plus an art style"""
    grade_id: str = ""
    subject_id: str = ""
    chapter_id: str = ""
    topic_id: str = ""
    subtopic_id: str = ""
    art_style_id: str = ""


class ResolvedSelection(BaseModel):
    grade: Grade
    subject: Subject
    chapter: Chapter
    topic: Topic
    subtopic: Subtopic
    artstyle: ArtStyle


class GeneratedTitleResponse(BaseModel):
    title: str
    folder_segments: List[str]
