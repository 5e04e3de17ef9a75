"""
Recomputation of the dashboard's figures directly from the division matrix.

The report never trusts numbers scraped from the page: every figure it prints
comes from ``compute_cell_value`` applied to the same matrix the live views
render from.
"""

import logging
import math
import re
from typing import Any, Dict, List, Optional, Sequence

from comprehensive_report.config.metric_mapping import MetricMapper
from comprehensive_report.data.models import (
    ALL_MONTHS, QUARTER_MONTHS, MetricDataset, PeriodColumn, SourceData,
)
from comprehensive_report.errors import ComputationInvalid
from comprehensive_report.utils.calculations import safe_ratio

logger = logging.getLogger(__name__)

_STRIP_CHARS = re.compile(r"[,\s¥€£$₽₹₪₩₫₨₴₸₼₾₿%]|AED", re.IGNORECASE)
_MINUS_VARIANTS = ("–", "—", "−")
_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def sanitize_numeric(value: Any) -> float:
    """
    Coerce a source cell to a finite float.

    Strings lose grouping commas, whitespace, currency symbols and percent
    signs; leading dash variants become a minus and ``(123)`` reads as -123, as do
    ``(-123)`` and ``(−123)``.
    Anything that still does not parse sanitizes to 0.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0

    text = str(value).strip()
    if not text:
        return 0.0

    if text.startswith(_MINUS_VARIANTS):
        text = "-" + text[1:]

    negative = False
    if text.startswith("(") and text.endswith(")"):
        # Accounting negative; a sign inside the parentheses is redundant
        negative = True
        text = text[1:-1].strip()
        if text.startswith(_MINUS_VARIANTS):
            text = text[1:]
        text = text.lstrip("+-")

    cleaned = _STRIP_CHARS.sub("", text)
    if not _NUMBER.match(cleaned):
        logger.warning(f"Unparseable numeric value {value!r}, using 0")
        return 0.0

    number = float(cleaned)
    if not math.isfinite(number):
        return 0.0
    return -number if negative else number


def months_for(column: PeriodColumn) -> List[str]:
    """Months a column aggregates over."""
    if column.months:
        return list(column.months)
    if column.month in QUARTER_MONTHS:
        return list(QUARTER_MONTHS[column.month])
    if column.month == 'Year' or not column.month:
        return list(ALL_MONTHS)
    return [column.month]


def _same_year(cell: Any, year: int) -> bool:
    if cell is None:
        return False
    try:
        return int(float(cell)) == int(year)
    except (TypeError, ValueError):
        return str(cell).strip() == str(year)


def compute_cell_value(source: SourceData, row_index: int, column: PeriodColumn) -> float:
    """
    Value of one metric row for one period column.

    Sums every source column whose year matches, whose month falls inside the
    period and whose data type matches case-insensitively. Structural problems
    (empty matrix, missing row) yield 0.

    Args:
        source: Division matrix
        row_index: Metric row in the matrix
        column: Period column to aggregate

    Returns:
        The aggregated value, always finite
    """
    if source is None or source.is_empty or row_index < 3 or row_index >= len(source.rows):
        return 0.0

    months = set(months_for(column))
    wanted_type = str(column.type).strip().lower()
    years = source.rows[0]
    data_row = source.rows[row_index]

    total = 0.0
    for col in range(1, len(years)):
        if not _same_year(years[col], column.year):
            continue
        month = source.cell(1, col)
        if month is None or str(month).strip() not in months:
            continue
        cell_type = source.cell(2, col)
        if cell_type is None or str(cell_type).strip().lower() != wanted_type:
            continue
        total += sanitize_numeric(data_row[col] if col < len(data_row) else None)
    return total


class MetricRecomputer:
    """Builds the MetricDataset embedded in the report."""

    def __init__(self, mapper: Optional[MetricMapper] = None):
        self.mapper = mapper or MetricMapper()
        self.logger = logging.getLogger(__name__)

    def compute_period(self, source: SourceData, column: PeriodColumn) -> Dict[str, float]:
        """All mapped metrics plus the derived ones for a single period."""
        values = {
            name: compute_cell_value(source, self.mapper.get_row_index(name), column)
            for name in self.mapper.metric_names
        }
        values['marginPerKg'] = safe_ratio(values['sales'] - values['materialCost'], values['salesVolume'])
        values['ebit'] = values['netProfit'] + values['bankInterest']
        return values

    def build_dataset(self, source: SourceData, columns: Sequence[PeriodColumn]) -> MetricDataset:
        """
        Recompute every metric for every visible period.

        Args:
            source: Division matrix
            columns: Column order; columns flagged invisible are skipped unless
                none is visible

        Returns:
            MetricDataset keyed by period key, in column order
        """
        if not columns:
            raise ComputationInvalid("No periods selected")

        visible = [column for column in columns if column.visible] or list(columns)
        dataset = MetricDataset()
        for column in visible:
            if column.period_key in dataset.values:
                self.logger.warning(f"Skipping repeated period {column.period_key}")
                continue
            dataset.add(column, self.compute_period(source, column))

        self.logger.info(f"Recomputed {len(self.mapper.metric_names)} metrics for {len(dataset.periods)} periods")
        return dataset

    def validate(self, dataset: MetricDataset) -> None:
        """
        Reject a dataset that looks like data that was never generated.

        Raises:
            ComputationInvalid: when every period has zero sales and zero volume
        """
        if not dataset.periods:
            raise ComputationInvalid("No visible periods to export")

        empty = [
            key for key in dataset.period_keys
            if dataset.get(key, 'sales') == 0 and dataset.get(key, 'salesVolume') == 0
        ]
        if len(empty) == len(dataset.periods):
            raise ComputationInvalid(
                "Sales and sales volume are zero for every visible period; "
                "the dashboard data has not been generated yet"
            )
        if empty:
            self.logger.warning(f"Periods with no sales or volume: {', '.join(empty)}")
