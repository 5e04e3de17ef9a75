"""
Unit tests for the shared numeric helpers.
"""

import pytest
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from comprehensive_report.utils.calculations import (
    NEUTRAL_DELTA, consecutive_deltas, delta_direction, format_compact, format_delta,
    format_per_kg, format_percent, js_round, percent_delta, percent_of, safe_ratio, to_fixed,
)


class TestDeltas:
    """Test cases for percentage deltas."""

    def test_increase(self):
        assert format_delta(percent_delta(130, 100)) == "+30.0%"

    def test_drop_to_zero(self):
        assert format_delta(percent_delta(0, 100)) == "-100.0%"

    def test_zero_previous_has_no_delta(self):
        assert percent_delta(50, 0) is None
        assert format_delta(None) == NEUTRAL_DELTA

    def test_negative_previous_uses_magnitude(self):
        # Loss shrinking from -100 to -50 is an improvement
        assert percent_delta(-50, -100) == pytest.approx(50.0)

    def test_rounding_to_zero_has_no_sign(self):
        assert format_delta(0.04) == "0.0%"
        assert format_delta(-0.04) == "0.0%"

    def test_consecutive_deltas(self):
        deltas = consecutive_deltas([100, 130, 0, 10])
        assert deltas[0] is None
        assert deltas[1] == pytest.approx(30.0)
        assert deltas[2] == pytest.approx(-100.0)
        assert deltas[3] is None

    def test_consecutive_deltas_empty(self):
        assert consecutive_deltas([]) == []

    @pytest.mark.parametrize("delta,expected", [
        (None, "flat"),
        (0.01, "flat"),
        (12.5, "up"),
        (-3.0, "down"),
    ])
    def test_delta_direction(self, delta, expected):
        assert delta_direction(delta) == expected


class TestFormatting:
    """Test cases for compact number formatting."""

    @pytest.mark.parametrize("value,expected", [
        (2_500_000, "2.50 M"),
        (-1_234_567, "-1.23 M"),
        (45_600, "45.6 K"),
        (1_000, "1.0 K"),
        (999.6, "1000"),
        (42, "42"),
        (0, "0"),
    ])
    def test_format_compact(self, value, expected):
        assert format_compact(value) == expected

    def test_format_per_kg(self):
        assert format_per_kg(3.14159) == "3.14 /kg"

    def test_safe_ratio(self):
        assert safe_ratio(10, 4) == 2.5
        assert safe_ratio(10, 0) == 0.0
        assert safe_ratio(10, -2) == 0.0

    def test_percent_of(self):
        assert percent_of(25, 200) == 12.5
        assert percent_of(25, 0) == 0.0


class TestDashboardRounding:
    """Ties round the way the dashboard's JavaScript formatting does."""

    @pytest.mark.parametrize("value,expected", [
        (1_250, "1.3 K"),
        (-1_250, "-1.3 K"),
        (2_125_000, "2.13 M"),
        (2.5, "3"),
        (-2.5, "-2"),
        (0.5, "1"),
        (-0.4, "0"),
    ])
    def test_format_compact_ties(self, value, expected):
        assert format_compact(value) == expected

    def test_format_delta_tie(self):
        assert format_delta(30.25) == "+30.3%"
        assert format_delta(-30.25) == "-30.3%"

    def test_float_binary_value_decides(self):
        # 1.005 is stored just below the tie, so toFixed(2) gives 1.00
        assert to_fixed(1.005, 2) == "1.00"
        assert to_fixed(0.125, 2) == "0.13"

    def test_format_percent_tie(self):
        assert format_percent(12.25) == "12.3%"

    def test_js_round(self):
        assert js_round(2.5) == 3
        assert js_round(-2.5) == -2
        assert js_round(-2.6) == -3
