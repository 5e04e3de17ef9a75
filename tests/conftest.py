"""
Shared fixtures: instant settings, a division matrix and a fake dashboard session.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from comprehensive_report.config.settings import Settings
from comprehensive_report.errors import ElementNotFound

ENV_OVERRIDES = (
    "DASHBOARD_URL", "EXPORT_OUTPUT_DIR", "LOG_LEVEL",
    "ECHARTS_CDN_URL", "REPORT_LOGO_PATH", "EXPORT_HEADLESS",
)

# Source columns: 2024 Jan-Mar Actual, 2025 Jan-Mar Actual, 2025 January Budget
SOURCE_COLUMNS = [
    (2024, 'January', 'Actual'), (2024, 'February', 'Actual'), (2024, 'March', 'Actual'),
    (2025, 'January', 'Actual'), (2025, 'February', 'Actual'), (2025, 'March', 'Actual'),
    (2025, 'January', 'Budget'),
]

SOURCE_ROWS = {
    3: [100, 200, 300, 150, 250, 400, 500],             # sales
    5: [50, 100, 150, 60, 100, 200, 250],               # materialCost
    7: [10, 20, 30, 12, 22, 35, 40],                    # salesVolume
    8: [11, 21, 31, 13, 23, 36, 41],                    # productionVolume
    9: [5, 5, 5, 6, 6, 6, 7],                           # labour
    10: ["1,000", "1,000", "1,000", 900, 900, 900, 950],  # depreciation
    12: [2, 2, 2, 3, 3, 3, 3],                          # electricity
    13: [1, 1, 1, 1, 1, 1, 1],                          # othersMfgOverheads
    14: [1008, 1008, 1008, 910, 910, 910, 961],         # totalDirectCost
    31: [4, 4, 4, 5, 5, 5, 5],                          # sellingExpenses
    32: [3, 3, 3, 3, 3, 3, 3],                          # transportation
    40: [6, 6, 6, 7, 7, 7, 7],                          # administration
    42: [1, 1, 1, 2, 2, 2, 3],                          # bankInterest
    52: [14, 14, 14, 17, 17, 17, 18],                   # totalBelowGPExpenses
    54: [10, 10, 10, 20, 20, 20, 30],                   # netProfit
    56: [25, 25, 25, 35, 35, 35, 45],                   # ebitda
}

MATRIX_HEIGHT = 57


def build_matrix(columns=SOURCE_COLUMNS, rows: Optional[Dict[int, List[Any]]] = None) -> List[List[Any]]:
    """Division matrix: header rows 0-2, labels in column 0, metric rows from 3."""
    rows = SOURCE_ROWS if rows is None else rows
    matrix = [[None] * (len(columns) + 1) for _ in range(MATRIX_HEIGHT)]
    matrix[0][0], matrix[1][0], matrix[2][0] = 'Year', 'Month', 'Type'
    for col, (year, month, data_type) in enumerate(columns, 1):
        matrix[0][col] = year
        matrix[1][col] = month
        matrix[2][col] = data_type
    for row_index, values in rows.items():
        matrix[row_index][0] = f"row {row_index}"
        for col, value in enumerate(values, 1):
            matrix[row_index][col] = value
    return matrix


def dashboard_state(matrix: Optional[List[List[Any]]] = None) -> Dict[str, Any]:
    """State object in the shape the dashboard's export accessor returns."""
    return {
        'division': 'FP',
        'columnOrder': [
            {'year': 2024, 'month': 'Q1', 'type': 'Actual', 'id': 'c-2024-q1'},
            {'year': 2025, 'month': 'Q1', 'type': 'Actual', 'id': 'c-2025-q1'},
            {'year': 2025, 'month': 'January', 'type': 'Budget', 'id': 'c-2025-jan-b'},
        ],
        'basePeriodIndex': 1,
        'visibleColumnIds': None,
        'divisionData': matrix if matrix is not None else build_matrix(),
    }


def make_instant(settings: Settings) -> Settings:
    """Remove every delay and shrink attempt budgets so tests run immediately."""
    settings.export_config['dashboard']['transition_delay'] = 0
    readiness = settings.export_config['readiness']
    readiness['settle'] = 0
    for kind in ('table', 'numeric', 'chart'):
        readiness[kind]['interval'] = 0
        readiness[kind]['max_attempts'] = 3
    return settings


class FakeSession:
    """In-memory stand-in for DashboardSession."""

    ORIGINAL_TAB = "Divisional Dashboard"

    def __init__(self, state: Optional[Dict[str, Any]] = None):
        self.state = state if state is not None else dashboard_state()
        self.tabs = {self.ORIGINAL_TAB, "Charts", "Tables"}
        self.active: Optional[str] = self.ORIGINAL_TAB
        self.toggles = {'hide_sales_rep': False, 'hide_budget_forecast': False}
        self.overlay_open = False
        self.opened: List[str] = []
        self.closed = 0
        self.commands = {"showCountryTable"}
        self.commands_run: List[str] = []
        self.fail_open = set()
        self.table_rows = 5
        self.value_texts = ['1.25 M', '35.0%', '4.5 K', '12.3']
        self.value_queries: List[Any] = []
        self.rendered = 2
        self.sheets: List[Dict[str, Any]] = []
        self.fetchable: Dict[str, str] = {}
        self.fetched: List[str] = []
        self.bundle: Optional[bytes] = b"window.echarts = window.echarts || {};" + b" " * 20000
        self.clone_options: List[Dict[str, Any]] = []

    async def click_text(self, scope: str, text: str) -> None:
        if text in self.fail_open:
            raise ElementNotFound(f"control labelled '{text}'", scope)
        self.overlay_open = True
        self.opened.append(text)
        self.active = None

    async def run_command(self, name: str, args=None) -> bool:
        self.commands_run.append(name)
        return name in self.commands

    async def dispatch_pointer_sequence(self, scope: str, text: str) -> bool:
        return True

    async def count_table_rows(self, selector: str) -> int:
        return self.table_rows

    async def collect_value_texts(self, root: str, container: Optional[str], selectors: List[str]) -> List[str]:
        self.value_queries.append((root, container))
        return list(self.value_texts)

    async def count_rendered(self, selector: str) -> int:
        return self.rendered

    async def element_exists(self, selector: str) -> bool:
        return self.overlay_open

    async def clone_view(self, options: Dict[str, Any]) -> Dict[str, Any]:
        self.clone_options.append(options)
        label = self.opened[-1] if self.opened else ''
        return {'found': True, 'markup': f'<div class="captured">{label}</div>', 'canvases': 0}

    async def stylesheet_snapshot(self) -> List[Dict[str, Any]]:
        return list(self.sheets)

    async def dismiss_overlay(self) -> None:
        if self.overlay_open:
            self.closed += 1
        self.overlay_open = False

    async def active_tab(self) -> Optional[str]:
        return self.active

    async def activate_tab(self, label: str) -> bool:
        if label not in self.tabs:
            return False
        self.active = label
        return True

    async def read_toggles(self, labels: Dict[str, str]) -> Dict[str, bool]:
        return {key: self.toggles.get(key, False) for key in labels}

    async def read_state(self) -> Optional[Dict[str, Any]]:
        return self.state

    async def fetch_text(self, path: str) -> Optional[str]:
        self.fetched.append(path)
        return self.fetchable.get(path)

    async def fetch_bytes(self, url: str) -> Optional[bytes]:
        return self.bundle


@pytest.fixture
def settings(monkeypatch):
    """Default settings with no delays and no environment overrides."""
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    return make_instant(Settings())


@pytest.fixture
def fake_session():
    return FakeSession()
