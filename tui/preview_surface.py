"""Textual implementation of the composer preview surface"""

import logging

from textual.app import App

from core.composer.preview import PreviewRequest, PreviewSurface
from tui.widgets.apply_view import ApplyView

logger = logging.getLogger(__name__)


class TextualPreviewSurface(PreviewSurface):
    """Pushes an ApplyView for each request and reports the user's choice.

    The decision callback is wired as the screen's dismiss callback, so it
    fires exactly once per screen.
    """

    def __init__(self, app: App):
        self.app = app
        self._screens: dict[int, ApplyView] = {}

    def show(self, request: PreviewRequest) -> None:
        screen = ApplyView(request)
        self._screens[id(request)] = screen

        def on_dismiss(decision):
            # withdrawn by dismiss(): the caller already stopped waiting
            if self._screens.pop(id(request), None) is None:
                return
            request.on_decision(decision)

        self.app.push_screen(screen, callback=on_dismiss)

    def dismiss(self, request: PreviewRequest) -> None:
        screen = self._screens.pop(id(request), None)
        if screen is None:
            return
        if screen is not self.app.screen:
            logger.warning("Preview for %s is not the active screen, leaving it open", request.target_path)
            return
        logger.info("Withdrawing preview for %s", request.target_path)
        screen.dismiss(None)
