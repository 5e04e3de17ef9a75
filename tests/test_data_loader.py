"""
Unit tests for SourceLoader, DataValidator and Settings.
"""

import pytest
import pandas as pd
import sys
from pathlib import Path
from unittest.mock import patch

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from comprehensive_report.config.settings import Settings
from comprehensive_report.data.loader import SourceLoader
from comprehensive_report.data.models import DashboardState, PeriodColumn, SourceData
from comprehensive_report.data.validator import DataValidator
from comprehensive_report.errors import ElementNotFound

from conftest import ENV_OVERRIDES, build_matrix, dashboard_state


class TestSourceLoader:
    """Test cases for SourceLoader."""

    @pytest.fixture
    def loader(self, settings):
        return SourceLoader(settings)

    def test_from_state(self, loader):
        state = loader.from_state(dashboard_state())

        assert state.division == 'FP'
        assert [c.id for c in state.columns] == ['c-2024-q1', 'c-2025-q1', 'c-2025-jan-b']
        assert state.base_period_index == 1
        assert state.source.cell(3, 1) == 100
        assert all(c.visible for c in state.columns)

    def test_from_state_applies_visible_ids(self, loader):
        raw = dashboard_state()
        raw['visibleColumnIds'] = ['c-2025-q1']
        state = loader.from_state(raw)

        assert [c.visible for c in state.columns] == [False, True, False]

    def test_missing_state_accessor(self, loader):
        with pytest.raises(ElementNotFound):
            loader.from_state(None)

    def test_missing_division_data(self, loader):
        raw = dashboard_state()
        raw['divisionData'] = []
        with pytest.raises(ElementNotFound):
            loader.from_state(raw)

    def test_missing_column_order(self, loader):
        raw = dashboard_state()
        raw['columnOrder'] = []
        with pytest.raises(ElementNotFound):
            loader.from_state(raw)

    def test_load_workbook_picks_division_sheet(self, loader, tmp_path):
        path = tmp_path / "divisions.xlsx"
        with pd.ExcelWriter(path, engine='openpyxl') as writer:
            pd.DataFrame([[1, 2], [3, 4]]).to_excel(writer, sheet_name='SB', index=False, header=False)
            pd.DataFrame(build_matrix()).to_excel(writer, sheet_name='FP', index=False, header=False)

        source = loader.load_workbook(str(path), division='fp')

        assert source.metadata['sheet'] == 'FP'
        assert source.cell(0, 1) == 2024
        assert source.cell(1, 1) == 'January'
        assert source.cell(4, 1) is None

    def test_load_workbook_not_found(self, loader):
        with pytest.raises(FileNotFoundError):
            loader.load_workbook("missing.xlsx")

    @patch('pandas.read_excel')
    def test_load_workbook_unknown_sheet(self, mock_read_excel, loader, tmp_path):
        path = tmp_path / "book.xlsx"
        path.write_bytes(b"")
        mock_read_excel.return_value = {'FP': pd.DataFrame(build_matrix())}

        with pytest.raises(ValueError):
            loader.load_workbook(str(path), sheet_name='TF')

    def test_load_periods(self, loader, tmp_path):
        path = tmp_path / "periods.yaml"
        path.write_text(
            "base_period_index: 0\n"
            "periods:\n"
            "  - {year: 2025, month: Q1, type: Actual}\n"
            "  - {year: 2025, month: H1, type: Actual, is_custom_range: true,\n"
            "     display_name: Jan-Jun, months: [January, February]}\n",
            encoding='utf-8',
        )
        columns, base_index = loader.load_periods(str(path))

        assert base_index == 0
        assert columns[0].period_key == '2025-Q1-Actual'
        assert columns[1].is_custom_range
        assert columns[1].months == ('January', 'February')
        assert columns[1].display_label == '2025 Jan-Jun Actual'

    def test_load_periods_empty(self, loader, tmp_path):
        path = tmp_path / "periods.yaml"
        path.write_text("periods: []\n", encoding='utf-8')
        with pytest.raises(ValueError):
            loader.load_periods(str(path))


class TestDataValidator:
    """Test cases for DataValidator."""

    @pytest.fixture
    def validator(self, settings):
        return DataValidator(settings)

    def make_state(self, columns, source=None, base_index=0):
        return DashboardState(
            division='FP',
            columns=columns,
            base_period_index=base_index,
            source=source or SourceData(rows=build_matrix()),
        )

    def test_valid_state(self, validator):
        columns = [PeriodColumn(2025, 'Q1', 'Actual', 'a'), PeriodColumn(2025, 'Year', 'Budget', 'b')]
        assert validator.validate(self.make_state(columns)) == []

    def test_duplicate_ids_and_bad_month(self, validator):
        columns = [PeriodColumn(2025, 'Q1', 'Actual', 'a'), PeriodColumn(2025, 'Smarch', 'Actual', 'a')]
        problems = validator.validate(self.make_state(columns))

        assert any('Duplicate' in p for p in problems)
        assert any('Smarch' in p for p in problems)

    def test_custom_range_without_months(self, validator):
        columns = [PeriodColumn(2025, 'H1', 'Actual', 'h', is_custom_range=True)]
        assert validator.validate(self.make_state(columns)) == ["Custom range h has no months"]

    def test_empty_source_and_bad_base_index(self, validator):
        columns = [PeriodColumn(2025, 'Q1', 'Actual', 'a')]
        problems = validator.validate(self.make_state(columns, SourceData(rows=[]), base_index=3))

        assert len(problems) == 2


class TestSettings:
    """Test cases for Settings."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ENV_OVERRIDES:
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self, tmp_path):
        settings = Settings(config_dir=tmp_path)

        assert settings.dashboard_url == "http://localhost:3000/"
        assert len(settings.get_view_definitions()) == 11
        assert settings.get_readiness('numeric')['min_ratio'] == 0.6
        assert settings.get_style_concept('kpi')['fallback_css']

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DASHBOARD_URL", "http://dashboard.local/")
        monkeypatch.setenv("EXPORT_OUTPUT_DIR", str(tmp_path / "out"))
        monkeypatch.setenv("EXPORT_HEADLESS", "false")
        settings = Settings(config_dir=tmp_path)

        assert settings.dashboard_url == "http://dashboard.local/"
        assert settings.output_dir == tmp_path / "out"
        assert settings.headless is False

    def test_missing_section_is_rejected(self, tmp_path):
        (tmp_path / "export.yaml").write_text("dashboard: {url: 'http://x/'}\n", encoding='utf-8')
        with pytest.raises(ValueError):
            Settings(config_dir=tmp_path)

    def test_unknown_view_is_rejected(self, tmp_path):
        (tmp_path / "views.yaml").write_text(
            "views:\n"
            "  - {view_id: sales-map, title: Map, open_label: Map, readiness: {kind: chart}}\n",
            encoding='utf-8',
        )
        with pytest.raises(ValueError):
            Settings(config_dir=tmp_path)

    def test_invalid_yaml_uses_defaults(self, tmp_path):
        (tmp_path / "style_concepts.yaml").write_text("kpi: [unclosed\n", encoding='utf-8')
        settings = Settings(config_dir=tmp_path)
        assert settings.get_style_concept('overlay') is not None
