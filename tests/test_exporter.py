"""
Integration tests for the exporter against a fake dashboard session.
"""

import asyncio
import json
import re
import pytest
import sys
from datetime import datetime
from pathlib import Path

from openpyxl import load_workbook

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from comprehensive_report.data.models import VIEW_IDS, ExportContext
from comprehensive_report.errors import (
    AssetLoadFailure, ComputationInvalid, ElementNotFound, ExportError, ExportInProgress,
)
from comprehensive_report.exporter import ComprehensiveExporter, report_filename, write_atomic

from conftest import FakeSession, build_matrix, dashboard_state


def payload_of(html: str) -> dict:
    match = re.search(r'<script type="application/json" id="report-data">(.*?)</script>', html, re.S)
    return json.loads(match.group(1))


class RecordingExporter(ComprehensiveExporter):
    """Keeps each run's context so tests can inspect warnings and placeholders."""

    def __init__(self, settings):
        super().__init__(settings)
        self.contexts = []

    async def _run(self, session, context, *args):
        self.contexts.append(context)
        return await super()._run(session, context, *args)


class TestReportFilename:
    """Test cases for report file naming."""

    def test_known_division(self):
        name = report_filename('FP', datetime(2025, 7, 1))
        assert name == "Flexible Packaging - Comprehensive Report - 2025-07-01.html"

    def test_unsafe_characters_removed(self):
        name = report_filename('A&B / <C>', datetime(2025, 7, 1))
        assert name == "AB C - Comprehensive Report - 2025-07-01.html"

    def test_empty_name(self):
        assert report_filename('***', datetime(2025, 7, 1)).startswith("Division - ")


class TestComprehensiveExporter:
    """Test cases for ComprehensiveExporter."""

    @pytest.fixture
    def exporter(self, settings):
        return RecordingExporter(settings)

    def run_export(self, exporter, session, output_dir, **kwargs):
        return asyncio.run(exporter.export(session, output_dir=output_dir, **kwargs))

    def test_export_writes_report(self, exporter, fake_session, tmp_path):
        path = self.run_export(exporter, fake_session, tmp_path)

        assert path.parent == tmp_path
        assert path.name.startswith("Flexible Packaging - Comprehensive Report - ")
        html = path.read_text(encoding='utf-8')
        for view_id in VIEW_IDS:
            assert f'id="detail-{view_id}"' in html
        assert payload_of(html)['views']['pl-financial']['markup'] == '<div class="captured">Profit and Loss Statement</div>'
        assert 'data-style-concept="overlay"' in html
        assert [p.name for p in tmp_path.iterdir()] == [path.name]

    def test_view_restored_after_success(self, exporter, fake_session, tmp_path):
        self.run_export(exporter, fake_session, tmp_path)

        assert fake_session.active == FakeSession.ORIGINAL_TAB
        assert not fake_session.overlay_open

    def test_view_restored_after_failure(self, exporter, fake_session, tmp_path):
        fake_session.bundle = None
        with pytest.raises(AssetLoadFailure):
            self.run_export(exporter, fake_session, tmp_path)

        # Views were opened before the bundle failed
        assert fake_session.opened
        assert fake_session.active == FakeSession.ORIGINAL_TAB
        assert not fake_session.overlay_open
        assert list(tmp_path.iterdir()) == []

    def test_zero_dataset_writes_nothing(self, exporter, tmp_path):
        session = FakeSession(dashboard_state(build_matrix(rows={})))
        with pytest.raises(ComputationInvalid):
            self.run_export(exporter, session, tmp_path)

        assert list(tmp_path.iterdir()) == []
        assert session.opened == []
        assert session.active == FakeSession.ORIGINAL_TAB

    def test_missing_state_is_hard_failure(self, exporter, tmp_path):
        session = FakeSession()
        session.state = None
        with pytest.raises(ElementNotFound):
            self.run_export(exporter, session, tmp_path)
        assert list(tmp_path.iterdir()) == []

    def test_soft_failures_become_warnings(self, exporter, fake_session, tmp_path):
        fake_session.table_rows = 0
        path = self.run_export(exporter, fake_session, tmp_path)

        context = exporter.contexts[-1]
        assert path.exists()
        assert context.views['pl-financial'].is_placeholder
        assert not context.views['sales-volume'].is_placeholder
        assert context.warnings

    def test_hidden_toggle_skips_view(self, exporter, fake_session, tmp_path):
        fake_session.toggles['hide_sales_rep'] = True
        self.run_export(exporter, fake_session, tmp_path)

        assert 'Sales by Sales Reps' not in fake_session.opened
        assert exporter.contexts[-1].views['sales-rep'].is_placeholder

    def test_context_not_retained(self, settings, fake_session, tmp_path):
        exporter = ComprehensiveExporter(settings)
        self.run_export(exporter, fake_session, tmp_path)

        assert not any(isinstance(value, ExportContext) for value in vars(exporter).values())

    def test_unknown_view_id_is_export_error(self, exporter, fake_session, tmp_path):
        with pytest.raises(ExportError, match="sales-map"):
            self.run_export(exporter, fake_session, tmp_path, view_ids=['pl-financial', 'sales-map'])

        assert fake_session.opened == []
        assert list(tmp_path.iterdir()) == []

    def test_second_export_is_refused(self, exporter, fake_session, tmp_path):
        async def overlapping():
            first = asyncio.ensure_future(exporter.export(fake_session, output_dir=tmp_path))
            await asyncio.sleep(0)
            try:
                with pytest.raises(ExportInProgress):
                    await exporter.export(fake_session, output_dir=tmp_path)
            finally:
                await first

        asyncio.run(overlapping())
        assert not exporter.busy

    def test_same_state_same_dataset(self, exporter, tmp_path):
        first = self.run_export(exporter, FakeSession(), tmp_path / "a").read_text(encoding='utf-8')
        second = self.run_export(exporter, FakeSession(), tmp_path / "b").read_text(encoding='utf-8')

        assert payload_of(first)['dataset'] == payload_of(second)['dataset']

    def test_metrics_workbook(self, exporter, fake_session, tmp_path):
        xlsx = tmp_path / "audit" / "metrics.xlsx"
        self.run_export(exporter, fake_session, tmp_path / "html", metrics_xlsx=str(xlsx))

        workbook = load_workbook(xlsx)
        assert workbook.sheetnames == ['Summary', 'Metrics']
        sheet = workbook['Metrics']
        assert sheet.cell(row=1, column=2).value == '2024 Q1 Actual'
        assert sheet.cell(row=2, column=1).value == 'Sales'
        assert sheet.cell(row=2, column=2).value == 600
        assert sheet.cell(row=2, column=3).value == 800


class TestWriteAtomic:
    """Test cases for atomic file writes."""

    def test_replaces_existing(self, tmp_path):
        target = tmp_path / "report.html"
        target.write_text("old", encoding='utf-8')
        write_atomic(target, "new")

        assert target.read_text(encoding='utf-8') == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["report.html"]
