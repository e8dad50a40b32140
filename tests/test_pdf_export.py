"""Tests for the PDF roadmap export."""

from datetime import date

import pytest
from loguru import logger

from config import find_unicode_font
from generators import build_mock_roadmap
from models import Goal, Roadmap, WeekPlan
from pdf_export import (
    BODY_BREAK_Y,
    DONE_MARKERS,
    MILESTONE_BREAK_Y,
    PAGE_BOTTOM,
    PENDING_MARKERS,
    TITLE,
    TOP,
    WEEK_BREAK_Y,
    Typeface,
    document_title,
    export_filename,
    layout_roadmap,
    render_pdf,
)

SYSTEM_FONT = find_unicode_font()


def _roadmap(weeks, task_text="Practice", tasks_per_week=4):
    return Roadmap(
        milestones=[f"Milestone {i}: checkpoint" for i in range(1, weeks + 1)],
        weeks={
            f"Week {i}": WeekPlan(
                tasks=[f"{task_text} {j}" for j in range(1, tasks_per_week + 1)],
                resources=[f"https://example.com/resource-week-{i}"],
                reflection=f"Week {i} reflection: what worked?",
                mentor_tip="Progress over perfection.",
            )
            for i in range(1, weeks + 1)
        },
    )


class TestRenderPdf:

    def test_returns_pdf_bytes(self, four_week_roadmap):
        data = render_pdf(four_week_roadmap, "Run a 10k", set())
        assert isinstance(data, bytes)
        assert data.startswith(b"%PDF")

    def test_text_layer_is_searchable(self, four_week_roadmap):
        data = render_pdf(four_week_roadmap, "Run a 10k", {"Week 1"}, compress=False)
        assert b"Week 1" in data
        assert b"Milestone 1" in data
        assert b"Run a 10k" in data

    def test_resources_and_reflections_are_not_exported(self, four_week_roadmap):
        data = render_pdf(four_week_roadmap, "Run a 10k", set(), compress=False)
        assert b"example.com" not in data
        assert b"reflection" not in data

    def test_same_inputs_give_same_bytes(self, four_week_roadmap):
        first = render_pdf(four_week_roadmap, "Run a 10k", {"Week 2"})
        second = render_pdf(four_week_roadmap, "Run a 10k", {"Week 2"})
        assert first == second

    def test_non_latin_text_does_not_break_core_font(self):
        goal = Goal(text="Learn 日本語 🎌", timeframe_weeks=1, mentor_style="techbro")
        data = render_pdf(build_mock_roadmap(goal), goal.text, set())
        assert data.startswith(b"%PDF")


class TestLayoutContent:

    def test_sections_in_order(self, four_week_roadmap):
        kinds = [p.kind for p in layout_roadmap(four_week_roadmap, "Run a 10k", set()).placements]
        assert kinds[:4] == ["title", "heading", "goal", "progress"]
        assert kinds.index("milestone") < kinds.index("week")
        assert kinds[-1] == "tip"

    def test_progress_line(self, four_week_roadmap):
        layout = layout_roadmap(four_week_roadmap, "Run a 10k", {"Week 1"})
        assert layout.of_kind("progress")[0].text == "Progress: 1/4 weeks completed (25%)"

    def test_progress_ignores_labels_outside_roadmap(self, four_week_roadmap):
        layout = layout_roadmap(four_week_roadmap, "Run a 10k", {"Week 1", "Week 99"})
        assert layout.of_kind("progress")[0].text == "Progress: 1/4 weeks completed (25%)"

    def test_milestones_and_week_labels_round_trip(self):
        roadmap = build_mock_roadmap(Goal(text="Learn Spanish", timeframe_weeks=6, mentor_style="zen"))
        layout = layout_roadmap(roadmap, "Learn Spanish", {"Week 2", "Week 5"})

        milestones = [p.text.split(" ", 1)[1] for p in layout.of_kind("milestone")]
        assert milestones == roadmap.milestones

        headers = [p.text for p in layout.of_kind("week")]
        assert [h.split(" ", 1)[1] if h.startswith("[x]") else h[4:] for h in headers] == roadmap.week_labels
        assert headers[1] == "[x] Week 2"
        assert headers[0] == "[ ] Week 1"

    def test_tasks_and_tips_are_bulleted_and_quoted(self, four_week_roadmap):
        layout = layout_roadmap(four_week_roadmap, "Run a 10k", set())
        first_week = four_week_roadmap.weeks["Week 1"]
        tasks = [p.text for p in layout.of_kind("task")][:len(first_week.tasks)]
        assert tasks == [f"- {task}" for task in first_week.tasks]
        assert layout.of_kind("tip")[0].text == f'"{first_week.mentor_tip}"'

    def test_long_goal_is_wrapped(self):
        goal_text = " ".join(["consistently"] * 60)
        layout = layout_roadmap(_roadmap(1), goal_text, set())
        goal = layout.of_kind("goal")[0]
        assert len(goal.lines) > 1
        assert goal.text == goal_text

    def test_unbroken_word_is_split(self):
        layout = layout_roadmap(_roadmap(1, task_text="x" * 400, tasks_per_week=1), "goal", set())
        task = layout.of_kind("task")[0]
        assert len(task.lines) > 1
        assert "".join(task.lines).replace(" ", "") == "-" + "x" * 400 + "1"


class TestPagination:

    def test_single_week_fits_on_one_page(self):
        assert layout_roadmap(_roadmap(1), "goal", set()).page_count == 1

    def test_page_count_non_decreasing_in_weeks(self):
        counts = [layout_roadmap(_roadmap(n), "goal", set()).page_count for n in range(1, 16)]
        assert counts == sorted(counts)
        assert counts[-1] > counts[0]

    def test_page_count_non_decreasing_in_task_length(self):
        counts = [
            layout_roadmap(_roadmap(4, task_text="step " * words), "goal", set()).page_count
            for words in (1, 10, 40, 80, 160)
        ]
        assert counts == sorted(counts)

    @pytest.mark.parametrize("weeks", [3, 12, 30])
    def test_blocks_start_before_their_break_threshold(self, weeks):
        layout = layout_roadmap(_roadmap(weeks, task_text="task " * 30), "goal", set())
        limits = {"milestone": MILESTONE_BREAK_Y, "week": WEEK_BREAK_Y, "task": BODY_BREAK_Y, "tip": BODY_BREAK_Y}
        for placement in layout.placements:
            if placement.kind in limits:
                assert TOP <= placement.y <= limits[placement.kind]

    def test_wrapped_blocks_stay_on_one_page(self):
        layout = layout_roadmap(_roadmap(10, task_text="long task text " * 12), "goal", set())
        for placement in layout.of_kind("task"):
            assert placement.y + (len(placement.lines) - 1) * 5 <= PAGE_BOTTOM

    def test_pages_are_visited_in_order(self):
        pages = [p.page for p in layout_roadmap(_roadmap(20), "goal", set()).placements]
        assert pages == sorted(pages)

    def test_goal_taller_than_a_page_continues_on_next_pages(self):
        goal_text = " ".join(["consistently"] * 900)
        layout = layout_roadmap(_roadmap(1), goal_text, set())
        parts = layout.of_kind("goal")

        assert layout.page_count > 2
        assert len(parts) > 1
        assert [p.continued for p in parts] == [False] + [True] * (len(parts) - 1)
        assert [p.page for p in parts] == list(range(parts[0].page, parts[0].page + len(parts)))
        assert layout.text_of("goal") == [goal_text]
        for part in parts:
            assert part.y + (len(part.lines) - 1) * 6 <= PAGE_BOTTOM
        for part in parts:
            assert part.y == TOP

    def test_long_goal_pushes_following_sections_down(self):
        layout = layout_roadmap(_roadmap(1), " ".join(["consistently"] * 900), set())
        last_goal_page = layout.of_kind("goal")[-1].page
        assert layout.of_kind("progress")[0].page >= last_goal_page
        assert layout.of_kind("week")[0].page >= last_goal_page


class TestFonts:

    def test_core_font_writes_unsupported_characters_as_placeholders(self):
        layout = layout_roadmap(_roadmap(1), "Learn 日本語 🎌", set())
        assert layout.of_kind("goal")[0].text == "Learn ??? ?"
        assert layout.replaced_characters == 4

    def test_latin1_text_is_kept_by_core_font(self):
        layout = layout_roadmap(_roadmap(1), "Apprendre le français à Noël", set())
        assert layout.of_kind("goal")[0].text == "Apprendre le français à Noël"
        assert layout.replaced_characters == 0

    def test_replaced_characters_are_logged(self):
        messages = []
        handler_id = logger.add(messages.append, level="WARNING", format="{message}")
        try:
            layout_roadmap(_roadmap(1), "Learn 日本語", set())
        finally:
            logger.remove(handler_id)
        assert any("3 character(s)" in message for message in messages)

    def test_core_typeface_uses_ascii_markers_and_plain_title(self):
        core = Typeface("helvetica")
        assert core.first_supported(DONE_MARKERS) == "[x]"
        assert core.first_supported(PENDING_MARKERS) == "[ ]"
        assert document_title(core) == TITLE

    def test_markers_follow_glyph_coverage(self):
        partial = Typeface("sans", frozenset(map(ord, "✔⌛•")))
        assert partial.first_supported(DONE_MARKERS) == "✔"
        assert partial.first_supported(PENDING_MARKERS) == "⌛"
        assert document_title(partial) == TITLE

        emoji = Typeface("emoji", frozenset(map(ord, "✅⏳🌱" + TITLE)))
        assert emoji.first_supported(DONE_MARKERS) == "✅"
        assert emoji.first_supported(PENDING_MARKERS) == "⏳"
        assert document_title(emoji) == f"🌱 {TITLE}"

    @pytest.mark.skipif(SYSTEM_FONT is None, reason="no Unicode TrueType font installed")
    def test_unicode_font_keeps_non_latin_text(self):
        typeface = Typeface.from_file("sans", SYSTEM_FONT)
        layout = layout_roadmap(_roadmap(2), "Learn Ελληνικά", {"Week 1"}, font_path=SYSTEM_FONT)
        assert layout.of_kind("goal")[0].text == "Learn Ελληνικά"
        assert layout.replaced_characters == 0
        assert layout.of_kind("title")[0].text == document_title(typeface)
        headers = [p.text for p in layout.of_kind("week")]
        assert headers[0] == f"{typeface.first_supported(DONE_MARKERS)} Week 1"
        assert headers[1] == f"{typeface.first_supported(PENDING_MARKERS)} Week 2"

    @pytest.mark.skipif(SYSTEM_FONT is None, reason="no Unicode TrueType font installed")
    def test_unicode_font_renders(self, four_week_roadmap):
        data = render_pdf(four_week_roadmap, "Run a 10k", {"Week 1"}, font_path=SYSTEM_FONT)
        assert data.startswith(b"%PDF")


def test_export_filename_uses_date():
    assert export_filename(date(2026, 10, 19)) == "agentic-ai-planner-2026-10-19.pdf"
