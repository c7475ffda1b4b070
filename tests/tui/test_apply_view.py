"""Tests for the apply view and the Textual preview surface."""

import asyncio

import pytest
from textual.app import App

from core.composer.preview import PreviewCoordinator, PreviewRequest, compute_diff
from core.composer.results import PreviewDecision
from tui.preview_surface import TextualPreviewSurface
from tui.widgets.apply_view import ApplyView, render_diff


def make_request(decisions: list) -> PreviewRequest:
    return PreviewRequest(
        target_path="notes/a.md",
        diff_lines=compute_diff("old line\n", "new line\n"),
        on_decision=decisions.append,
    )


def test_render_diff_prefixes():
    text = render_diff(compute_diff("keep\nold\n", "keep\nnew\n"))
    plain = text.plain
    assert "  keep" in plain
    assert "- old" in plain
    assert "+ new" in plain


class TestApplyView:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("key", "expected"),
        [
            ("a", PreviewDecision.ACCEPTED),
            ("r", PreviewDecision.REJECTED),
            ("escape", None),
        ],
    )
    async def test_keys(self, key, expected):
        decisions: list = []
        app = App()
        async with app.run_test(size=(100, 40)) as pilot:
            TextualPreviewSurface(app).show(make_request(decisions))
            await pilot.pause()
            assert isinstance(app.screen, ApplyView)
            await pilot.press(key)
            await pilot.pause()
        assert decisions == [expected]

    @pytest.mark.asyncio
    async def test_accept_button(self):
        decisions: list = []
        app = App()
        async with app.run_test(size=(100, 40)) as pilot:
            TextualPreviewSurface(app).show(make_request(decisions))
            await pilot.pause()
            await pilot.click("#accept-btn")
            await pilot.pause()
        assert decisions == [PreviewDecision.ACCEPTED]


class TestTextualPreviewSurface:
    @pytest.mark.asyncio
    async def test_coordinator_round_trip(self, vault):
        vault.create("notes/a.md", "old line\n")
        app = App()
        async with app.run_test(size=(100, 40)) as pilot:
            coordinator = PreviewCoordinator(vault, TextualPreviewSurface(app))
            pending = asyncio.create_task(coordinator.submit("notes/a.md", "old line\n", "new line\n"))
            await pilot.pause()
            await pilot.press("a")
            outcome = await asyncio.wait_for(pending, timeout=5)
        assert outcome.decision is PreviewDecision.ACCEPTED
        assert vault.read("notes/a.md").content == "new line\n"

    @pytest.mark.asyncio
    async def test_withdrawn_request_closes_screen(self, vault, caplog):
        vault.create("notes/a.md", "old line\n")
        app = App()
        async with app.run_test(size=(100, 40)) as pilot:
            coordinator = PreviewCoordinator(vault, TextualPreviewSurface(app))
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(coordinator.submit("notes/a.md", "old line\n", "new line\n"), timeout=0.2)
            await pilot.pause()
            assert not isinstance(app.screen, ApplyView)
        assert vault.read("notes/a.md").content == "old line\n"
        assert "Ignoring repeated preview decision" not in caplog.text
