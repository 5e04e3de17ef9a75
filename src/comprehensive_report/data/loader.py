"""
Loading of the division source matrix and the period column order.
"""

import logging
import pandas as pd
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import yaml

from comprehensive_report.config.settings import Settings
from comprehensive_report.data.models import DashboardState, PeriodColumn, SourceData
from comprehensive_report.errors import ElementNotFound


class SourceLoader:
    """Builds DashboardState from the live page state or from files on disk."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.logger = logging.getLogger(__name__)

    def load_workbook(self, file_path: str, sheet_name: Optional[str] = None,
                      division: str = "") -> SourceData:
        """
        Load a division matrix from an Excel workbook.

        Args:
            file_path: Path to the workbook
            sheet_name: Sheet to read; defaults to the sheet named after the
                division, or the first sheet
            division: Division code used to pick the sheet

        Returns:
            SourceData holding the raw matrix
        """
        self.logger.info(f"Loading division workbook: {file_path}")

        if not Path(file_path).exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            sheets = pd.read_excel(file_path, sheet_name=None, header=None, engine='openpyxl')
        except Exception as e:
            self.logger.error(f"Error loading workbook: {str(e)}")
            raise

        available_sheets = list(sheets.keys())
        self.logger.info(f"Found {len(available_sheets)} sheets: {available_sheets}")

        selected = sheet_name or self._pick_sheet(available_sheets, division)
        if selected not in sheets:
            raise ValueError(f"Sheet '{selected}' not found in {file_path}")

        df = sheets[selected]
        rows, cols = df.shape
        self.logger.info(f"Using sheet '{selected}': {rows} rows x {cols} columns")

        source = SourceData.from_dataframe(df, division=division or selected)
        source.metadata.update({
            'source_file': file_path,
            'sheet': selected,
            'load_timestamp': pd.Timestamp.now().isoformat(),
        })
        return source

    def _pick_sheet(self, sheet_names: List[str], division: str) -> str:
        if division:
            wanted = division.strip().lower()
            for name in sheet_names:
                if name.strip().lower() == wanted:
                    return name
            for name in sheet_names:
                if wanted in name.lower():
                    return name
        return sheet_names[0]

    def load_periods(self, file_path: str) -> Tuple[List[PeriodColumn], Optional[int]]:
        """
        Load the column order from a periods YAML file.

        The file holds a ``periods`` list of column records and an optional
        ``base_period_index``.
        """
        with open(file_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}

        records = config.get('periods') or []
        if not records:
            raise ValueError(f"No periods defined in {file_path}")

        columns = [PeriodColumn.from_dict(record) for record in records]
        base_index = config.get('base_period_index')
        self.logger.info(f"Loaded {len(columns)} periods from {file_path}")
        return columns, base_index

    def from_state(self, state: Optional[Dict[str, Any]]) -> DashboardState:
        """
        Convert the dashboard's exported state object.

        Raises:
            ElementNotFound: when the page exposes no usable state
        """
        if not state:
            raise ElementNotFound("dashboard state accessor", self.settings.dashboard.get("state_expression"))

        matrix = state.get('divisionData')
        if not matrix:
            raise ElementNotFound("division data in dashboard state")

        column_order = state.get('columnOrder') or []
        if not column_order:
            raise ElementNotFound("column order in dashboard state")

        visible_ids = state.get('visibleColumnIds')
        visible_set = set(str(v) for v in visible_ids) if visible_ids else None
        columns = []
        for record in column_order:
            column = PeriodColumn.from_dict(record)
            if visible_set is not None:
                column = PeriodColumn.from_dict(record, visible=column.id in visible_set)
            columns.append(column)

        division = str(state.get('division') or "")
        source = SourceData(rows=[list(row) for row in matrix], division=division)
        source.metadata['origin'] = 'dashboard'

        self.logger.info(f"Dashboard state: division={division!r}, {len(columns)} columns, "
                         f"{len(source.rows)} matrix rows")
        return DashboardState(
            division=division,
            columns=columns,
            base_period_index=state.get('basePeriodIndex'),
            source=source,
        )

    def from_files(self, workbook: str, periods: str, division: str = "",
                   sheet_name: Optional[str] = None) -> DashboardState:
        """Build the state from a workbook plus a periods file."""
        source = self.load_workbook(workbook, sheet_name=sheet_name, division=division)
        columns, base_index = self.load_periods(periods)
        return DashboardState(
            division=division or source.division,
            columns=columns,
            base_period_index=base_index,
            source=source,
        )
