"""
Top-level export handler: dashboard state in, one self-contained HTML file out.
"""

import asyncio
import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from comprehensive_report.capture.orchestrator import CaptureOrchestrator
from comprehensive_report.capture.styles import StyleExtractor
from comprehensive_report.capture.views import ViewRegistry
from comprehensive_report.config.metric_mapping import MetricMapper
from comprehensive_report.config.settings import Settings
from comprehensive_report.data.loader import SourceLoader
from comprehensive_report.data.models import VIEW_IDS, DashboardState, ExportContext, MetricDataset
from comprehensive_report.data.validator import DataValidator
from comprehensive_report.errors import ExportError, ExportInProgress
from comprehensive_report.metrics.recompute import MetricRecomputer
from comprehensive_report.report.assembler import DocumentAssembler, division_display_name
from comprehensive_report.report.assets import AssetLoader
from comprehensive_report.report.metrics_workbook import MetricsWorkbookWriter

OVERLAY_CONCEPT = "overlay"

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9\-_ ]")
_WHITESPACE = re.compile(r"\s+")


def report_filename(division: str, day: Optional[datetime] = None) -> str:
    """``<Division Name> - Comprehensive Report - YYYY-MM-DD.html``."""
    name = _UNSAFE_NAME_CHARS.sub("", division_display_name(division))
    name = _WHITESPACE.sub(" ", name).strip() or "Division"
    return f"{name} - Comprehensive Report - {(day or datetime.now()).strftime('%Y-%m-%d')}.html"


def write_atomic(path: Path, text: str) -> None:
    """Write through a temp file in the target directory so no partial file is ever visible."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=".export-", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(text)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


class ComprehensiveExporter:
    """
    Runs one export at a time against a dashboard session.

    Soft failures (a view that never becomes ready, a missing stylesheet)
    become placeholders and warnings. Hard failures abort before anything is
    written and leave the dashboard on the view the user was looking at.
    """

    def __init__(self, settings: Settings, mapper: Optional[MetricMapper] = None):
        self.settings = settings
        self.mapper = mapper or MetricMapper()
        self.logger = logging.getLogger(__name__)
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def export(self, session, output_dir: Optional[Path] = None,
                     state: Optional[DashboardState] = None,
                     view_ids: Optional[List[str]] = None,
                     metrics_xlsx: Optional[str] = None) -> Path:
        """
        Produce the report file.

        Args:
            session: Dashboard session (live page or a test double)
            output_dir: Target directory, default the configured output directory
            state: Pre-loaded dashboard state; read from the page when None
            view_ids: Subset of views to capture, default all
            metrics_xlsx: Optional path for the metric audit workbook

        Returns:
            Path of the written HTML file

        Raises:
            ExportInProgress: when another export is still running
            ExportError: on any hard failure or an unknown view id; nothing is written
        """
        if self._lock.locked():
            raise ExportInProgress("An export is already running")
        unknown = [view_id for view_id in view_ids or [] if view_id not in VIEW_IDS]
        if unknown:
            raise ExportError(f"Unknown view id(s): {', '.join(unknown)}")

        async with self._lock:
            context = ExportContext()
            try:
                await self._remember_view(session, context)
                return await self._run(session, context, output_dir, state, view_ids, metrics_xlsx)
            except ExportError as e:
                self.logger.error(f"Export failed: {e}")
                raise
            finally:
                await self._restore_view(session, context)

    async def _remember_view(self, session, context: ExportContext) -> None:
        context.original_view = await session.active_tab()
        toggles = await session.read_toggles(self.settings.get_toggle_labels())
        context.hide_sales_rep = bool(toggles.get('hide_sales_rep', False))
        context.hide_budget_forecast = bool(toggles.get('hide_budget_forecast', False))
        self.logger.info(f"Export started from view {context.original_view!r}, toggles {toggles}")

    async def _restore_view(self, session, context: ExportContext) -> None:
        """Close anything left open and re-activate the view the user started on."""
        try:
            await session.dismiss_overlay()
        except ExportError as e:
            self.logger.warning(f"Could not close the open view: {e}")
        if context.original_view:
            restored = await session.activate_tab(context.original_view)
            if not restored:
                self.logger.warning(f"Original view {context.original_view!r} no longer exists")

    async def _run(self, session, context: ExportContext, output_dir: Optional[Path],
                   state: Optional[DashboardState], view_ids: Optional[List[str]],
                   metrics_xlsx: Optional[str]) -> Path:
        if state is None:
            state = SourceLoader(self.settings).from_state(await session.read_state())

        context.division = state.division
        context.columns = list(state.columns)
        context.base_period_index = state.base_period_index
        for issue in DataValidator(self.settings).validate(state):
            context.warn(issue)

        dataset = self._build_dataset(state)

        registry = ViewRegistry(self.settings, session)
        styles = StyleExtractor(session, self.settings)
        orchestrator = CaptureOrchestrator(self.settings, registry, styles)
        await orchestrator.capture_all(context, view_ids)
        await self._collect_styles(context, registry, styles)

        assets = AssetLoader(self.settings, session)
        logo = assets.load_logo()
        bundle = await assets.load_chart_bundle()

        cards = [registry.definition(view_id).to_card() for view_id in registry.view_ids]
        html = DocumentAssembler(self.settings).render(context, dataset, cards, logo, bundle)

        target = Path(output_dir) if output_dir else self.settings.output_dir
        path = target / report_filename(context.division)
        write_atomic(path, html)
        self.logger.info(f"Report written: {path} ({len(html)} characters)")

        if metrics_xlsx:
            MetricsWorkbookWriter(self.mapper).write(dataset, metrics_xlsx, context)

        for warning in context.warnings:
            self.logger.warning(f"Export warning: {warning}")
        return path

    def _build_dataset(self, state: DashboardState) -> MetricDataset:
        recomputer = MetricRecomputer(self.mapper)
        dataset = recomputer.build_dataset(state.source, state.columns)
        recomputer.validate(dataset)
        return dataset

    async def _collect_styles(self, context: ExportContext, registry: ViewRegistry,
                              styles: StyleExtractor) -> None:
        """One fragment per concept, the overlay chrome included."""
        for view_id in registry.view_ids:
            definition = registry.definition(view_id)
            view = context.views.get(view_id)
            if definition.style_concept and view is not None and view.style_fragment:
                context.style_fragments[definition.style_concept] = view.style_fragment

        overlay = styles.concept(OVERLAY_CONCEPT)
        if overlay is not None:
            context.style_fragments[OVERLAY_CONCEPT] = await styles.extract(overlay, context)
