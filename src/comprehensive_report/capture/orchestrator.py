"""
Sequential capture of every registered dashboard view.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from comprehensive_report.capture.styles import StyleExtractor
from comprehensive_report.capture.views import ViewRegistry
from comprehensive_report.config.settings import Settings
from comprehensive_report.data.models import CapturedView, ExportContext
from comprehensive_report.errors import ReadinessTimeout
from comprehensive_report.utils.logging_config import capture_scope


class CaptureState(Enum):
    """States a single view passes through while being captured."""
    IDLE = "idle"
    OPENING = "opening"
    WAITING_READY = "waiting_ready"
    CLONING = "cloning"
    POST_PROCESSING = "post_processing"
    CLOSING = "closing"
    CAPTURED = "captured"
    PLACEHOLDER = "placeholder"


class CaptureOrchestrator:
    """Opens, captures and closes views one at a time."""

    def __init__(self, settings: Settings, registry: ViewRegistry, styles: StyleExtractor):
        self.settings = settings
        self.registry = registry
        self.styles = styles
        self.logger = logging.getLogger(__name__)
        self.states: Dict[str, CaptureState] = {}

    def _enter(self, view_id: str, state: CaptureState) -> None:
        self.states[view_id] = state
        self.logger.debug(f"{view_id}: {state.value}")

    async def capture_view(self, view_id: str, context: ExportContext) -> CapturedView:
        """
        Capture one view.

        The overlay is always closed before returning, whatever happened while
        it was open. A readiness timeout yields a placeholder; any other error
        propagates once the view is closed.

        Args:
            view_id: Registered view id
            context: Export context collecting warnings

        Returns:
            The captured view, or a placeholder on readiness timeout
        """
        accessor = self.registry.get(view_id)
        definition = accessor.definition
        self._enter(view_id, CaptureState.IDLE)

        try:
            self._enter(view_id, CaptureState.OPENING)
            await accessor.open()

            self._enter(view_id, CaptureState.WAITING_READY)
            try:
                await accessor.wait_ready()
            except ReadinessTimeout as e:
                message = f"{definition.title}: data did not finish loading ({e})"
                self.logger.warning(message)
                context.warn(message)
                self._enter(view_id, CaptureState.PLACEHOLDER)
                return CapturedView.placeholder(view_id, definition.title, "Data did not finish loading in time")

            self._enter(view_id, CaptureState.CLONING)
            result = await accessor.capture()

            # Text substitutions and style stripping ran on the detached clone
            self._enter(view_id, CaptureState.POST_PROCESSING)
            style_fragment = ""
            if definition.style_concept:
                concept = self.styles.concept(definition.style_concept)
                if concept is not None:
                    style_fragment = await self.styles.extract(concept, context)

            view = CapturedView(
                view_id=view_id,
                title=definition.title,
                markup=result.get('markup', ''),
                style_fragment=style_fragment,
                captured_at=datetime.now(),
            )
            self._enter(view_id, CaptureState.CAPTURED)
            return view
        finally:
            previous = self.states.get(view_id)
            self._enter(view_id, CaptureState.CLOSING)
            await accessor.close()
            self.states[view_id] = previous

    async def capture_all(self, context: ExportContext,
                          view_ids: Optional[List[str]] = None) -> Dict[str, CapturedView]:
        """
        Capture every registered view in order, substituting placeholders for failures.

        Args:
            context: Export context; captured views are stored in ``context.views``
            view_ids: Subset of views to capture, default all registered views

        Returns:
            Mapping of view id to captured view or placeholder
        """
        for view_id in view_ids or self.registry.view_ids:
            definition = self.registry.definition(view_id)

            if definition.hidden_by and getattr(context, definition.hidden_by, False):
                self.logger.info(f"Skipping {view_id}: hidden by the dashboard's {definition.hidden_by} filter")
                context.views[view_id] = CapturedView.placeholder(
                    view_id, definition.title, "Hidden by the dashboard filter at export time"
                )
                continue

            with capture_scope(view_id):
                self.logger.info(f"Capturing view: {definition.title}")
                try:
                    view = await self.capture_view(view_id, context)
                except Exception as e:
                    message = f"{definition.title}: capture failed ({e})"
                    self.logger.error(message)
                    context.warn(message)
                    self.states[view_id] = CaptureState.PLACEHOLDER
                    view = CapturedView.placeholder(view_id, definition.title, "This view could not be captured")
            context.views[view_id] = view

        captured = sum(1 for view in context.views.values() if not view.is_placeholder)
        self.logger.info(f"Captured {captured} of {len(context.views)} views")
        return context.views
