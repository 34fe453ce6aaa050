"""
Unit Tests for Guidance Response Parser

Tests section extraction, the no-header fallback and the line-level task split.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "conversation_copilot", "src"))

from conversation_copilot.guidance_parser import (
    AddressedQuestionsExtractor,
    GuidanceResponseParser,
    GuidanceSections,
    StructuredResponseExtractor,
    get_extractor,
    register_extractor,
)


class TestGuidanceResponseParser:
    """Test suite for GuidanceResponseParser."""

    @pytest.fixture
    def parser(self):
        return GuidanceResponseParser()

    def test_two_sections(self, parser):
        parsed = parser.parse("Addressed Questions\n1. Q1 - A1\nUnaddressed Questions\n1. Q2")

        assert len(parsed.completed) == 1
        assert parsed.completed[0].question_text == "Q1"
        assert parsed.completed[0].answer_text == "A1"
        assert parsed.completed[0].status == "completed"

        assert len(parsed.pending) == 1
        assert parsed.pending[0].question_text == "Q2"
        assert parsed.pending[0].answer_text is None
        assert parsed.pending[0].status == "pending"

    def test_realistic_response(self, parser):
        raw = (
            "Addressed Questions\n"
            "1. What is the client's target retirement age and income goal? - 62, $120k a year\n"
            "\n"
            "4. What products does the client currently hold? - A 401k and a brokerage account\n"
            "Unaddressed Questions\n"
            "2. What is the client's current investable asset total and cash allocation?\n"
            "9. What tax efficiency methods were discussed?\n"
        )

        parsed = parser.parse(raw)

        assert [t.question_text for t in parsed.completed] == [
            "What is the client's target retirement age and income goal?",
            "What products does the client currently hold?",
        ]
        assert parsed.completed[0].answer_text == "62, $120k a year"
        assert [t.id for t in parsed.pending] == ["pending-0", "pending-1"]
        assert all(t.answer_text is None for t in parsed.pending)

    def test_missing_headers_fall_back_to_full_text(self, parser):
        parsed = parser.parse("free text with no headers")

        assert parsed.sections.matched is False
        assert len(parsed.completed) == 1
        assert len(parsed.pending) == 1
        assert parsed.completed[0].question_text == "free text with no headers"
        assert parsed.pending[0].question_text == "free text with no headers"

    def test_empty_response(self, parser):
        parsed = parser.parse("")

        assert parsed.completed == []
        assert parsed.pending == []

    def test_first_hyphen_split_limitation(self, parser):
        """A hyphen inside the question moves the split point (known limitation)."""
        tasks = parser.split_tasks("3. When is the follow-up meeting? - Tuesday", "completed")

        assert tasks[0].question_text == "When is the follow"
        assert tasks[0].answer_text == "up meeting? - Tuesday"

    def test_blank_lines_skipped(self, parser):
        tasks = parser.split_tasks("\n\n1. First\n   \n2. Second\n", "pending")

        assert [t.question_text for t in tasks] == ["First", "Second"]

    def test_to_dict(self, parser):
        parsed = parser.parse("Addressed Questions\n1. Q1 - A1\nUnaddressed Questions\n1. Q2")

        assert parsed.to_dict()["pending"][0]["question_text"] == "Q2"


class DoneOpenExtractor(StructuredResponseExtractor):
    """Template whose model answers with DONE:/OPEN: blocks."""

    name = "done_open"

    def extract(self, raw_text):
        done, _, still_open = raw_text.partition("OPEN:")
        return GuidanceSections(completed_text=done.replace("DONE:", "").strip(), pending_text=still_open.strip())


class TestExtractorRegistry:
    """Test suite for pluggable extractors."""

    def test_default_extractor_registered(self):
        assert isinstance(get_extractor("addressed_questions"), AddressedQuestionsExtractor)

    def test_unknown_extractor(self):
        with pytest.raises(KeyError):
            get_extractor("no_such_template")

    def test_custom_extractor(self):
        register_extractor(DoneOpenExtractor())
        parser = GuidanceResponseParser(get_extractor("done_open"))

        parsed = parser.parse("DONE:\n1. Name - Jane\nOPEN:\n2. Goals")

        assert parsed.completed[0].answer_text == "Jane"
        assert parsed.pending[0].question_text == "Goals"
