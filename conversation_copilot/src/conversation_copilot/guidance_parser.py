"""
Live Guidance Response Parsing

Turns the free-text answer of the guidance LLM into addressed (completed)
and unaddressed (pending) task lists.

Parsing is template-specific, so section extraction sits behind a
StructuredResponseExtractor; the line-level task split is shared.

Known limitation: the question/answer split happens at the first hyphen
on a line, so a question that itself contains a hyphen is split in the
wrong place.
"""

import re
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from conversation_copilot.conversation_state import GuidanceTask

logger = logging.getLogger(__name__)


@dataclass
class GuidanceSections:
    """Raw text of the two sections before they are split into tasks."""
    completed_text: str
    pending_text: str
    matched: bool = True


@dataclass
class ParsedGuidance:
    """Task lists derived from one guidance response."""
    completed: List[GuidanceTask] = field(default_factory=list)
    pending: List[GuidanceTask] = field(default_factory=list)
    sections: Optional[GuidanceSections] = None

    def to_dict(self) -> Dict:
        return {
            "completed": [t.to_dict() for t in self.completed],
            "pending": [t.to_dict() for t in self.pending],
        }


class StructuredResponseExtractor(ABC):
    """Pulls the addressed/unaddressed sections out of one prompt template's output."""

    name: str = "base"

    @abstractmethod
    def extract(self, raw_text: str) -> GuidanceSections:
        """Split raw LLM text into completed/pending section text."""


class AddressedQuestionsExtractor(StructuredResponseExtractor):
    """
    Extractor for the "Addressed Questions / Unaddressed Questions" template.

    If either header is missing the whole response is used for both
    sections, so the advisor still sees best-effort content.
    """

    name = "addressed_questions"

    SECTION_PATTERN = re.compile(r"Addressed Questions(.*?)Unaddressed Questions(.*)", re.DOTALL)

    def extract(self, raw_text: str) -> GuidanceSections:
        match = self.SECTION_PATTERN.search(raw_text)
        if match:
            return GuidanceSections(
                completed_text=match.group(1).strip(),
                pending_text=match.group(2).strip(),
            )

        logger.warning("⚠️ [GuidanceParser] Section headers not found - using full response for both lists")
        return GuidanceSections(completed_text=raw_text, pending_text=raw_text, matched=False)


_EXTRACTORS: Dict[str, StructuredResponseExtractor] = {}


def register_extractor(extractor: StructuredResponseExtractor) -> None:
    """Register an extractor under its template name."""
    _EXTRACTORS[extractor.name] = extractor


def get_extractor(name: str) -> StructuredResponseExtractor:
    """Look up a registered extractor by template name."""
    if name not in _EXTRACTORS:
        raise KeyError(f"No guidance extractor registered for template '{name}'")
    return _EXTRACTORS[name]


register_extractor(AddressedQuestionsExtractor())


class GuidanceResponseParser:
    """Parses guidance responses into GuidanceTask lists."""

    ORDINAL_PATTERN = re.compile(r"^\d+\.\s*")
    ANSWER_PATTERN = re.compile(r"(.*?)\s*-\s*(.*)")

    def __init__(self, extractor: Optional[StructuredResponseExtractor] = None):
        self.extractor = extractor or get_extractor(AddressedQuestionsExtractor.name)

    def parse(self, raw_text: str) -> ParsedGuidance:
        """
        Parse one guidance response.

        Args:
            raw_text: Free-text answer from the guidance LLM

        Returns:
            ParsedGuidance with completed and pending tasks
        """
        sections = self.extractor.extract(raw_text or "")
        return ParsedGuidance(
            completed=self.split_tasks(sections.completed_text, "completed"),
            pending=self.split_tasks(sections.pending_text, "pending"),
            sections=sections,
        )

    def split_tasks(self, text: str, status: str) -> List[GuidanceTask]:
        """Split a section into one task per non-blank line."""
        if not text or not text.strip():
            return []

        lines = [line for line in text.split("\n") if line.strip()]
        tasks = []
        for index, line in enumerate(lines):
            clean_line = self.ORDINAL_PATTERN.sub("", line.strip()).strip()
            answer_match = self.ANSWER_PATTERN.match(clean_line)
            if answer_match:
                question_text = answer_match.group(1).strip()
                answer_text = answer_match.group(2).strip()
            else:
                question_text = clean_line
                answer_text = None

            tasks.append(
                GuidanceTask(
                    id=f"{status}-{index}",
                    question_text=question_text,
                    status=status,
                    answer_text=answer_text,
                )
            )
        return tasks
