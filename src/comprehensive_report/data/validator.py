"""
Validation of the dashboard state before recomputation.
"""

import logging
from typing import List

from comprehensive_report.config.settings import Settings
from comprehensive_report.data.models import ALL_MONTHS, QUARTER_MONTHS, DashboardState, PeriodColumn, SourceData


class DataValidator:
    """Structural checks on the column order and the source matrix."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.logger = logging.getLogger(__name__)

    def validate(self, state: DashboardState) -> List[str]:
        """
        Validate a dashboard state.

        Args:
            state: State to validate

        Returns:
            List of problems found; empty when the state is usable
        """
        self.logger.info("Starting data validation")

        problems = []
        problems.extend(self._validate_columns(state.columns))
        problems.extend(self._validate_source(state.source))

        if state.base_period_index is not None and not 0 <= state.base_period_index < len(state.columns):
            problems.append(f"Base period index {state.base_period_index} is outside the column order")

        if problems:
            for problem in problems:
                self.logger.warning(problem)
        else:
            self.logger.info("Data validation passed")
        return problems

    def _validate_columns(self, columns: List[PeriodColumn]) -> List[str]:
        """Column ids must be unique and months must be recognizable."""
        problems = []
        if not columns:
            return ["No period columns selected"]

        seen = set()
        for column in columns:
            if column.id in seen:
                problems.append(f"Duplicate period column id: {column.id}")
            seen.add(column.id)

            month = column.month
            if column.is_custom_range:
                if not column.months:
                    problems.append(f"Custom range {column.id} has no months")
            elif month and month != 'Year' and month not in QUARTER_MONTHS and month not in ALL_MONTHS:
                problems.append(f"Unrecognized month '{month}' in column {column.id}")
        return problems

    def _validate_source(self, source: SourceData) -> List[str]:
        """The matrix needs the three header rows and at least one data column."""
        if source.is_empty:
            return ["Source matrix is empty or missing its header rows"]
        if source.column_count < 2:
            return ["Source matrix has no data columns"]

        problems = []
        for idx in range(3):
            if len(source.rows[idx]) != source.column_count:
                problems.append(f"Header row {idx} has {len(source.rows[idx])} cells, "
                                f"expected {source.column_count}")
        return problems
