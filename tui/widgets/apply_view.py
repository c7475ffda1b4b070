"""Apply view - review a proposed file change and accept or reject it"""

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Static

from core.composer.preview import DiffChange, PreviewRequest
from core.composer.results import PreviewDecision


def render_diff(changes: list[DiffChange]) -> Text:
    """Render diff runs as colored text, one prefix per line"""
    text = Text()
    for change in changes:
        if change.added:
            prefix, style = "+ ", "green"
        elif change.removed:
            prefix, style = "- ", "red"
        else:
            prefix, style = "  ", "dim"
        for line in change.value.splitlines():
            text.append(f"{prefix}{line}\n", style=style)
    return text


class ApplyView(ModalScreen[PreviewDecision | None]):
    """Modal diff review. Dismisses with ACCEPTED, REJECTED, or None when closed"""

    CSS = """
    ApplyView {
        align: center middle;
    }

    #apply-dialog {
        width: 90%;
        height: 80%;
        border: thick $primary;
        background: $surface;
        padding: 1 2;
    }

    #apply-title {
        width: 100%;
        content-align: center middle;
        text-style: bold;
        color: $accent;
        margin-bottom: 1;
    }

    #apply-summary {
        width: 100%;
        color: $text-muted;
        margin-bottom: 1;
    }

    #apply-diff {
        width: 100%;
        height: 1fr;
        border: solid $primary-darken-1;
        margin-bottom: 1;
    }

    #apply-buttons {
        width: 100%;
        height: auto;
        layout: horizontal;
        align: center middle;
    }

    #apply-buttons Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        ("a", "accept", "Accept"),
        ("r", "reject", "Reject"),
        ("escape", "close", "Close"),
    ]

    def __init__(self, request: PreviewRequest):
        super().__init__()
        self.request = request

    def compose(self) -> ComposeResult:
        added = sum(c.count for c in self.request.diff_lines if c.added)
        removed = sum(c.count for c in self.request.diff_lines if c.removed)
        with Container(id="apply-dialog"):
            yield Label(f"Review changes: {self.request.target_path}", id="apply-title")
            yield Static(f"+{added} / -{removed} tokens", id="apply-summary")
            with VerticalScroll(id="apply-diff"):
                yield Static(render_diff(self.request.diff_lines), id="apply-diff-body")
            with Container(id="apply-buttons"):
                yield Button("Accept", variant="success", id="accept-btn")
                yield Button("Reject", variant="error", id="reject-btn")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "accept-btn":
            self.action_accept()
        elif event.button.id == "reject-btn":
            self.action_reject()

    def action_accept(self) -> None:
        self.dismiss(PreviewDecision.ACCEPTED)

    def action_reject(self) -> None:
        self.dismiss(PreviewDecision.REJECTED)

    def action_close(self) -> None:
        self.dismiss(None)
