"""
Unit tests for the command line parser.
"""

import pytest
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from comprehensive_report.main import build_parser


class TestParser:
    """Test cases for build_parser."""

    def test_views_accepts_known_ids(self):
        args = build_parser().parse_args(["--views", "pl-financial", "sales-rep"])
        assert args.views == ["pl-financial", "sales-rep"]

    def test_views_rejects_unknown_id(self, capsys):
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args(["--views", "pl-financial", "sales-map"])

        assert exc.value.code == 2
        assert "sales-map" in capsys.readouterr().err

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.views is None
        assert args.headed is False
