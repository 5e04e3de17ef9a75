"""
Metric row mapping for the divisional source matrix.
"""

from typing import Dict, List, Optional
from dataclasses import dataclass


@dataclass(frozen=True)
class MetricInfo:
    """Metric information structure."""
    name: str
    label: str
    row_index: int
    group: str  # 'core', 'manufacturing', 'below_gp' or 'profit'
    is_total: bool = False


class MetricMapper:
    """Fixed mapping between metric names and their rows in the division matrix."""

    def __init__(self):
        self.metrics = self._initialize_metrics()
        self.name_to_info = {metric.name: metric for metric in self.metrics}
        self.group_to_names = self._build_group_mapping()

    def _initialize_metrics(self) -> List[MetricInfo]:
        """Initialize the predefined metric rows."""
        return [
            # Core
            MetricInfo("sales", "Sales", 3, "core"),
            MetricInfo("materialCost", "Material", 5, "core"),
            MetricInfo("salesVolume", "Sales Volume (kg)", 7, "core"),
            MetricInfo("productionVolume", "Production Volume (kg)", 8, "core"),

            # Manufacturing cost
            MetricInfo("labour", "Labour", 9, "manufacturing"),
            MetricInfo("depreciation", "Depreciation", 10, "manufacturing"),
            MetricInfo("electricity", "Electricity", 12, "manufacturing"),
            MetricInfo("othersMfgOverheads", "Others Mfg. Overheads", 13, "manufacturing"),
            MetricInfo("totalDirectCost", "Total Actual Direct Cost", 14, "manufacturing", True),

            # Below gross profit
            MetricInfo("sellingExpenses", "Selling Expenses", 31, "below_gp"),
            MetricInfo("transportation", "Transportation", 32, "below_gp"),
            MetricInfo("administration", "Administration", 40, "below_gp"),
            MetricInfo("bankInterest", "Bank Interest", 42, "below_gp"),
            MetricInfo("totalBelowGPExpenses", "Total Below GP Expenses", 52, "below_gp", True),

            # Profit
            MetricInfo("netProfit", "Net Profit", 54, "profit"),
            MetricInfo("ebitda", "EBITDA", 56, "profit"),
        ]

    def _build_group_mapping(self) -> Dict[str, List[str]]:
        """Build mapping from group to metric names."""
        mapping: Dict[str, List[str]] = {}
        for metric in self.metrics:
            mapping.setdefault(metric.group, []).append(metric.name)
        return mapping

    def get_metric_info(self, name: str) -> Optional[MetricInfo]:
        """Get metric information by name."""
        return self.name_to_info.get(name)

    def get_row_index(self, name: str) -> int:
        """Get the matrix row for a metric; raises KeyError for unknown names."""
        return self.name_to_info[name].row_index

    def get_metrics_by_group(self, group: str, include_totals: bool = True) -> List[str]:
        """Get metric names for a group, optionally without the total row."""
        names = self.group_to_names.get(group, [])
        if include_totals:
            return list(names)
        return [name for name in names if not self.name_to_info[name].is_total]

    def get_total_metric(self, group: str) -> Optional[str]:
        """Get the total-row metric of a group, if it has one."""
        for name in self.group_to_names.get(group, []):
            if self.name_to_info[name].is_total:
                return name
        return None

    @property
    def metric_names(self) -> List[str]:
        """All metric names in row order."""
        return [metric.name for metric in self.metrics]
