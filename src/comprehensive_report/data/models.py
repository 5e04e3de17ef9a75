"""
Data models for the report export pipeline.
"""

import json
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field

import pandas as pd

VIEW_IDS: Tuple[str, ...] = (
    'divisional-kpis',
    'pl-financial',
    'product-group',
    'sales-customer',
    'sales-rep',
    'sales-country',
    'sales-volume',
    'margin-analysis',
    'manufacturing-cost',
    'below-gp-expenses',
    'combined-trends',
)

QUARTER_MONTHS: Dict[str, List[str]] = {
    'Q1': ['January', 'February', 'March'],
    'Q2': ['April', 'May', 'June'],
    'Q3': ['July', 'August', 'September'],
    'Q4': ['October', 'November', 'December'],
}

ALL_MONTHS: List[str] = [month for quarter in ('Q1', 'Q2', 'Q3', 'Q4') for month in QUARTER_MONTHS[quarter]]


@dataclass(frozen=True)
class ColorScheme:
    """Named palette entry used to colour a period."""
    name: str
    label: str
    primary: str
    secondary: str
    is_dark: bool


COLOR_SCHEMES: Dict[str, ColorScheme] = {
    'blue': ColorScheme('blue', 'Blue', '#288cfa', '#103766', True),
    'green': ColorScheme('green', 'Green', '#2E865F', '#C6F4D6', True),
    'yellow': ColorScheme('yellow', 'Yellow', '#FFD700', '#FFFDE7', False),
    'orange': ColorScheme('orange', 'Orange', '#FF6B35', '#FFE0B2', False),
    'boldContrast': ColorScheme('boldContrast', 'Bold Contrast', '#003366', '#FF0000', True),
}


@dataclass(frozen=True)
class PeriodColumn:
    """One reporting column: a year/period/type combination or a custom range."""
    year: int
    month: Optional[str]
    type: str
    id: str
    is_custom_range: bool = False
    display_name: Optional[str] = None
    custom_color: Optional[str] = None
    months: Tuple[str, ...] = ()
    visible: bool = True

    @property
    def period_key(self) -> str:
        """Key of this column in a MetricDataset."""
        if self.is_custom_range:
            return f"{self.year}-{self.month}-{self.type}"
        return f"{self.year}-{self.month or 'Year'}-{self.type}"

    @property
    def axis_label(self) -> str:
        """Three-line category label used on chart axes."""
        if self.is_custom_range:
            return f"{self.year}\n{self.display_name or self.month}\n{self.type}"
        if not self.month or self.month == 'Year':
            return f"{self.year}\n\n{self.type}"
        return f"{self.year}\n{self.month}\n{self.type}"

    @property
    def display_label(self) -> str:
        """Human readable label, e.g. ``2024 Q1 Actual`` or ``2024 FY Budget``."""
        if self.is_custom_range and self.display_name:
            range_label = self.display_name
        elif self.month == 'Year':
            range_label = 'FY'
        else:
            range_label = self.month
        parts = [str(self.year)]
        if range_label:
            parts.append(range_label)
        if self.type:
            parts.append(self.type)
        return ' '.join(parts)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], visible: Optional[bool] = None) -> 'PeriodColumn':
        """
        Build a column from the dashboard's column record.

        Accepts both the camelCase keys the dashboard uses and snake_case keys
        from the periods YAML file.
        """
        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        year = int(pick('year'))
        month = pick('month')
        period_type = str(pick('type', default='Actual'))
        column_id = pick('id', default=f"{year}-{month or 'Year'}-{period_type}")
        months = pick('months', default=())
        if isinstance(months, str):
            months = [months]
        is_visible = pick('visible', 'visibleInCharts', default=True) if visible is None else visible
        return cls(
            year=year,
            month=month,
            type=period_type,
            id=str(column_id),
            is_custom_range=bool(pick('isCustomRange', 'is_custom_range', default=False)),
            display_name=pick('displayName', 'display_name'),
            custom_color=pick('customColor', 'custom_color'),
            months=tuple(months),
            visible=bool(is_visible),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form embedded in the report payload."""
        return {
            'id': self.id,
            'key': self.period_key,
            'year': self.year,
            'month': self.month,
            'type': self.type,
            'isCustomRange': self.is_custom_range,
            'displayName': self.display_name,
            'label': self.display_label,
        }


@dataclass
class SourceData:
    """
    Raw division matrix as rendered by the dashboard.

    Row 0 holds years, row 1 months, row 2 data types (Actual, Budget, ...).
    Rows from 3 onward are metric rows; column 0 holds the row labels.
    """
    rows: List[List[Any]]
    division: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, division: str = "") -> 'SourceData':
        """Convert a header-less sheet into a matrix, mapping NaN cells to None."""
        cleaned = df.astype(object).where(pd.notna(df), None)
        return cls(rows=cleaned.values.tolist(), division=division)

    @property
    def is_empty(self) -> bool:
        return len(self.rows) < 3 or not self.rows[0]

    @property
    def column_count(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    def cell(self, row: int, col: int) -> Any:
        """Cell value or None when the position lies outside the matrix."""
        if row < 0 or row >= len(self.rows):
            return None
        values = self.rows[row]
        if col < 0 or col >= len(values):
            return None
        return values[col]


@dataclass
class MetricDataset:
    """Recomputed figures per period; every value is a finite float."""
    periods: List[PeriodColumn] = field(default_factory=list)
    values: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def add(self, period: PeriodColumn, metrics: Dict[str, float]) -> None:
        for name, value in metrics.items():
            if value is None or not math.isfinite(value):
                raise ValueError(f"Metric {name} for {period.period_key} is not a finite number")
        self.periods.append(period)
        self.values[period.period_key] = dict(metrics)

    def get(self, period_key: str, metric: str) -> float:
        return self.values.get(period_key, {}).get(metric, 0.0)

    def series(self, metric: str, periods: Optional[Sequence[PeriodColumn]] = None) -> List[float]:
        """Values of one metric across the given (default: all) periods, in order."""
        return [self.get(p.period_key, metric) for p in (periods or self.periods)]

    @property
    def period_keys(self) -> List[str]:
        return [p.period_key for p in self.periods]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'periods': [p.to_dict() for p in self.periods],
            'values': self.values,
        }

    def to_json(self) -> str:
        """Deterministic serialization; identical inputs give identical text."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(',', ':'), ensure_ascii=False)


@dataclass
class CapturedView:
    """Markup and styling captured from one dashboard view, or a placeholder."""
    view_id: str
    title: str
    markup: str = ""
    style_fragment: str = ""
    captured_at: datetime = field(default_factory=datetime.now)
    is_placeholder: bool = False
    reason: Optional[str] = None

    @classmethod
    def placeholder(cls, view_id: str, title: str, reason: str) -> 'CapturedView':
        return cls(view_id=view_id, title=title, is_placeholder=True, reason=reason)


@dataclass
class ExportContext:
    """
    Transient state of a single export.

    Created when an export starts and threaded through every step; nothing in
    it outlives the export.
    """
    division: str = ""
    columns: List[PeriodColumn] = field(default_factory=list)
    base_period_index: Optional[int] = None
    original_view: Optional[str] = None
    hide_sales_rep: bool = False
    hide_budget_forecast: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    warnings: List[str] = field(default_factory=list)
    views: Dict[str, CapturedView] = field(default_factory=dict)
    style_fragments: Dict[str, str] = field(default_factory=dict)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    @property
    def visible_columns(self) -> List[PeriodColumn]:
        """Columns flagged visible in charts; all columns when none is flagged."""
        visible = [column for column in self.columns if column.visible]
        return visible or list(self.columns)

    @property
    def base_period(self) -> Optional[PeriodColumn]:
        if self.base_period_index is None:
            return None
        if 0 <= self.base_period_index < len(self.columns):
            return self.columns[self.base_period_index]
        return None


@dataclass
class DashboardState:
    """Everything the export needs from the dashboard's current filter state."""
    division: str
    columns: List[PeriodColumn]
    base_period_index: Optional[int]
    source: SourceData
