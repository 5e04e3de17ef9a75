"""
Application settings and configuration management.
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional
import yaml
from dotenv import load_dotenv

from comprehensive_report.data.models import VIEW_IDS

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Settings:
    """Application settings and configuration."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.project_root = Path(__file__).resolve().parent.parent.parent.parent
        self.config_dir = Path(config_dir) if config_dir else self.project_root / "config"
        self.logger = logging.getLogger(__name__)

        # Initialize configuration containers
        self.export_config: Dict[str, Any] = {}
        self.views_config: Dict[str, Any] = {}
        self.style_concepts: Dict[str, Any] = {}

        self._load_config()
        self._validate_config()

    def _load_config(self):
        """Load configuration from YAML files with error handling."""
        self.export_config = self._load_yaml_config(
            self.config_dir / "export.yaml",
            self._default_export_config,
            "export configuration"
        )

        self.views_config = self._load_yaml_config(
            self.config_dir / "views.yaml",
            self._default_views_config,
            "view definitions"
        )

        self.style_concepts = self._load_yaml_config(
            self.config_dir / "style_concepts.yaml",
            self._default_style_concepts,
            "style concepts"
        )

    def _load_yaml_config(self, file_path: Path, default_func, config_name: str) -> Dict[str, Any]:
        """Load a YAML config file with fallback to defaults."""
        try:
            if file_path.exists():
                with open(file_path, 'r', encoding='utf-8') as f:
                    config = yaml.safe_load(f)
                    if config is None:
                        self.logger.warning(f"Empty {config_name} file, using defaults")
                        return default_func()
                    self.logger.info(f"Loaded {config_name} from {file_path}")
                    return config
            else:
                self.logger.warning(f"{config_name} file not found at {file_path}, using defaults")
                return default_func()
        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing {config_name} YAML: {e}, using defaults")
            return default_func()
        except OSError as e:
            self.logger.error(f"Error loading {config_name}: {e}, using defaults")
            return default_func()

    def _validate_config(self):
        """Validate loaded configuration."""
        try:
            self._validate_export_config()
            self._validate_views()
            self._validate_style_concepts()
            self.logger.info("Configuration validation completed successfully")
        except Exception as e:
            self.logger.error(f"Configuration validation failed: {e}")
            raise

    def _validate_export_config(self):
        """Validate export configuration."""
        required_sections = ['dashboard', 'readiness', 'assets', 'toggles']
        for section in required_sections:
            if section not in self.export_config:
                raise ValueError(f"Missing required section: {section} in export configuration")

        readiness = self.export_config['readiness']
        for kind in ('table', 'numeric', 'chart'):
            if kind not in readiness:
                raise ValueError(f"Missing readiness settings for '{kind}'")
            for key in ('interval', 'max_attempts'):
                if not isinstance(readiness[kind].get(key), (int, float)):
                    raise ValueError(f"Readiness setting {kind}.{key} must be numeric")

        numeric = readiness['numeric']
        if not 0 <= float(numeric.get('min_ratio', 0)) <= 1:
            raise ValueError("Readiness setting numeric.min_ratio must lie between 0 and 1")

    def _validate_views(self):
        """Validate view definitions."""
        views = self.views_config.get('views')
        if not isinstance(views, list) or not views:
            raise ValueError("views must be a non-empty list")

        required_view_keys = ['view_id', 'title', 'open_label', 'readiness']
        seen = set()
        for view in views:
            for key in required_view_keys:
                if key not in view:
                    raise ValueError(f"Missing required view key: {key} in view {view.get('view_id', 'unknown')}")
            view_id = view['view_id']
            if view_id not in VIEW_IDS:
                raise ValueError(f"Unknown view id: {view_id}")
            if view_id in seen:
                raise ValueError(f"Duplicate view id: {view_id}")
            seen.add(view_id)
            if view['readiness'].get('kind') not in ('table', 'numeric', 'chart'):
                raise ValueError(f"View {view_id} has an unknown readiness kind")

    def _validate_style_concepts(self):
        """Validate style concepts; each one needs a non-empty fallback."""
        for name, concept in self.style_concepts.items():
            if not str(concept.get('fallback_css', '')).strip():
                raise ValueError(f"Style concept {name} has no fallback_css")

    def _default_export_config(self) -> Dict[str, Any]:
        """Default export configuration."""
        return {
            "dashboard": {
                "url": "http://localhost:3000/",
                "landing_selector": ".divisional-dashboard",
                "card_selector": "article.divisional-dashboard__card",
                "overlay_selector": ".divisional-dashboard__overlay",
                "overlay_body_selector": ".divisional-dashboard__overlay-body",
                "close_selector": ".divisional-dashboard__overlay-close",
                "tab_selector": "button, [role='tab']",
                "state_expression": "window.__dashboardExport && window.__dashboardExport.state()",
                "transition_delay": 0.6,
                "navigation_timeout": 60000,
            },
            "readiness": {
                "settle": 0.5,
                "table": {"interval": 0.2, "max_attempts": 50, "min_rows": 2},
                "numeric": {
                    "interval": 0.5,
                    "max_attempts": 40,
                    "container_selector": ".kpi-dashboard",
                    "value_selectors": [".kpi-value", ".metric-value", "[data-kpi-value]"],
                    "min_count": 3,
                    "min_ratio": 0.6,
                    "zero_is_placeholder": True,
                },
                "chart": {"interval": 0.25, "max_attempts": 40, "selector": "canvas, svg", "min_count": 1},
            },
            "assets": {
                "logo_path": "assets/logo.png",
                "echarts_paths": [
                    "assets/echarts.min.js",
                    "node_modules/echarts/dist/echarts.min.js",
                ],
                "echarts_cdn_url": "https://cdn.jsdelivr.net/npm/echarts@5.4.3/dist/echarts.min.js",
                "guard_attempts": 50,
                "guard_interval_ms": 100,
            },
            "toggles": {
                "hide_sales_rep": "Hide Sales Rep",
                "hide_budget_forecast": "Hide Budget",
            },
            "browser": {
                "headless": True,
                "viewport": {"width": 1600, "height": 1000},
            },
            "output": {
                "directory": "data/output",
            },
        }

    def _default_views_config(self) -> Dict[str, Any]:
        """Default view definitions, in dashboard card order."""
        overlay_body = ".divisional-dashboard__overlay-body"
        table_readiness = {"kind": "table", "selector": f"{overlay_body} table"}
        chart_readiness = {"kind": "chart", "selector": f"{overlay_body} canvas, {overlay_body} svg"}
        return {
            "views": [
                {
                    "view_id": "divisional-kpis",
                    "title": "Divisional KPIs",
                    "open_label": "Divisional KPIs",
                    "group": "primary",
                    "icon": "📈",
                    "copy": "Key performance indicators and metrics overview",
                    "root_selector": overlay_body,
                    "readiness": {"kind": "numeric"},
                    "style_concept": "kpi",
                },
                {
                    "view_id": "sales-volume",
                    "title": "Sales & Volume Analysis",
                    "open_label": "Sales & Volume Analysis",
                    "group": "charts",
                    "icon": "📊",
                    "copy": "Visual analysis of sales revenue and volume trends across different time periods",
                    "root_selector": overlay_body,
                    "readiness": chart_readiness,
                    "chart_bearing": True,
                },
                {
                    "view_id": "margin-analysis",
                    "title": "Margin Analysis",
                    "open_label": "Margin Analysis",
                    "group": "charts",
                    "icon": "📋",
                    "copy": "Detailed breakdown of profit margins over material costs with trend analysis",
                    "root_selector": overlay_body,
                    "readiness": chart_readiness,
                    "chart_bearing": True,
                },
                {
                    "view_id": "manufacturing-cost",
                    "title": "Manufacturing Cost",
                    "open_label": "Manufacturing Cost",
                    "group": "charts",
                    "icon": "🏭",
                    "copy": "Analysis of direct manufacturing costs including materials, labor, and production expenses",
                    "root_selector": overlay_body,
                    "readiness": chart_readiness,
                    "chart_bearing": True,
                },
                {
                    "view_id": "below-gp-expenses",
                    "title": "Below GP Expenses",
                    "open_label": "Below GP Expenses",
                    "group": "charts",
                    "icon": "📊",
                    "copy": "Operating expenses below gross profit including administrative and selling costs",
                    "root_selector": overlay_body,
                    "readiness": chart_readiness,
                    "chart_bearing": True,
                },
                {
                    "view_id": "combined-trends",
                    "title": "Cost & Profitability Trend",
                    "open_label": "Cost & Profitability Trend",
                    "group": "charts",
                    "icon": "📈",
                    "copy": "Historical trends showing cost evolution and profitability patterns over time",
                    "root_selector": overlay_body,
                    "readiness": chart_readiness,
                    "chart_bearing": True,
                },
                {
                    "view_id": "pl-financial",
                    "title": "Profit and Loss Statement",
                    "open_label": "Profit and Loss Statement",
                    "group": "tables",
                    "icon": "💰",
                    "copy": "Complete Profit & Loss statement with detailed financial performance breakdown",
                    "root_selector": overlay_body,
                    "readiness": table_readiness,
                    "style_concept": "pl-financial",
                },
                {
                    "view_id": "product-group",
                    "title": "Product Groups",
                    "open_label": "Product Groups",
                    "group": "tables",
                    "icon": "📊",
                    "copy": "Performance analysis by product categories including sales, margins, and growth metrics",
                    "root_selector": overlay_body,
                    "readiness": table_readiness,
                    "style_concept": "product-group",
                    "text_substitutions": {"Product Group": "Product Groups"},
                    "strip_empty_header_rows": True,
                },
                {
                    "view_id": "sales-rep",
                    "title": "Sales by Sales Reps",
                    "open_label": "Sales by Sales Reps",
                    "group": "tables",
                    "icon": "🧑‍💼",
                    "copy": "Sales representative performance analysis and individual contribution breakdown",
                    "root_selector": overlay_body,
                    "readiness": table_readiness,
                    "style_concept": "sales-rep",
                    "text_substitutions": {"Sales Rep": "Sales Reps"},
                    "preserve_column_widths": True,
                    "hidden_by": "hide_sales_rep",
                },
                {
                    "view_id": "sales-customer",
                    "title": "Sales by Customers",
                    "open_label": "Sales by Customers",
                    "group": "tables",
                    "icon": "👥",
                    "copy": "Top customer analysis showing sales performance and contribution by key accounts",
                    "root_selector": overlay_body,
                    "readiness": table_readiness,
                    "style_concept": "sales-customer",
                    "text_substitutions": {"Customer": "Customers"},
                    "preserve_column_widths": True,
                },
                {
                    "view_id": "sales-country",
                    "title": "Sales by Countries",
                    "open_label": "Sales by Countries",
                    "group": "tables",
                    "icon": "🌍",
                    "copy": "Geographic distribution of sales performance across different countries and regions",
                    "root_selector": overlay_body,
                    "readiness": table_readiness,
                    "style_concept": "sales-country",
                    "sub_view": {"label": "Table", "command": "showCountryTable"},
                    "text_substitutions": {"Country": "Country Names"},
                },
            ]
        }

    def _default_style_concepts(self) -> Dict[str, Any]:
        """Default style concepts with their minimal built-in fallbacks."""
        def candidates(file_name: str) -> List[str]:
            return [
                f"/src/components/dashboard/{file_name}",
                f"./src/components/dashboard/{file_name}",
                f"../dashboard/{file_name}",
                file_name,
            ]

        table_fallback = (
            "table{border-collapse:collapse;width:100%;font-size:13px}"
            "th,td{border:1px solid #d9d9d9;padding:4px 8px;text-align:right}"
            "th{background:#103766;color:#fff;text-align:center}"
            "td:first-child,th:first-child{text-align:left}"
        )
        return {
            "kpi": {
                "path_signature": "KPIExecutiveSummary.css",
                "selector_signatures": [".kpi-dashboard", ".kpi-section", ".kpi-card", ".kpi-value"],
                "min_length": 500,
                "candidate_paths": candidates("KPIExecutiveSummary.css"),
                "fallback_css": (
                    ".kpi-dashboard{display:flex;flex-direction:column;gap:16px}"
                    ".kpi-cards{display:grid;grid-template-columns:repeat(auto-fit,minmax(220px,1fr));gap:12px}"
                    ".kpi-card{background:#fff;border-radius:8px;padding:12px;box-shadow:0 1px 4px rgba(0,0,0,.12)}"
                    ".kpi-value{font-size:22px;font-weight:700;color:#103766}"
                ),
            },
            "overlay": {
                "path_signature": "DivisionalDashboardLanding.css",
                "selector_signatures": [".divisional-dashboard__overlay", ".divisional-dashboard__card"],
                "min_length": 300,
                "candidate_paths": candidates("DivisionalDashboardLanding.css"),
                "fallback_css": (
                    ".divisional-dashboard__overlay-title{font-size:22px;margin:0}"
                    ".divisional-dashboard__overlay-description{color:#555}"
                ),
            },
            "pl-financial": {
                "path_signature": "PLTableStyles.css",
                "selector_signatures": [".pl-table", ".pl-financial-table", "--pl-hdr-h"],
                "min_length": 1000,
                "candidate_paths": candidates("PLTableStyles.css"),
                "fallback_css": table_fallback,
            },
            "product-group": {
                "path_signature": "ProductGroupTableStyles.css",
                "selector_signatures": [".product-group-table", ".pg-table-", ".pg-separator-row", "--pg-hdr-h"],
                "min_length": 1000,
                "candidate_paths": candidates("ProductGroupTableStyles.css"),
                "fallback_css": table_fallback + ".pg-separator-row td{background:#f0f0f0}",
            },
            "sales-rep": {
                "path_signature": "SalesBySalesRepTable.css",
                "selector_signatures": [".sales-by-sales-rep-table", ".sales-rep-table", "sales-by-sales-rep"],
                "min_length": 1000,
                "candidate_paths": candidates("SalesBySalesRepTable.css"),
                "fallback_css": table_fallback,
            },
            "sales-customer": {
                "path_signature": "SalesByCustomerTableNew.css",
                "selector_signatures": [".sales-by-customer-table", "sales-by-customer"],
                "min_length": 1000,
                "candidate_paths": candidates("SalesByCustomerTableNew.css"),
                "fallback_css": table_fallback,
            },
            "sales-country": {
                "path_signature": "SalesByCountryTableStyles.css",
                "selector_signatures": [".sales-by-country-table", ".sales-country-table"],
                "min_length": 1000,
                "candidate_paths": candidates("SalesByCountryTableStyles.css"),
                "fallback_css": table_fallback,
            },
        }

    @property
    def dashboard(self) -> Dict[str, Any]:
        return self.export_config["dashboard"]

    @property
    def dashboard_url(self) -> str:
        """Dashboard URL, overridable through DASHBOARD_URL."""
        return os.getenv("DASHBOARD_URL", self.dashboard.get("url", "http://localhost:3000/"))

    @property
    def output_dir(self) -> Path:
        """Directory the report is written to."""
        directory = os.getenv("EXPORT_OUTPUT_DIR") or self.export_config.get("output", {}).get("directory", "data/output")
        return self._resolve(directory)

    @property
    def log_level(self) -> str:
        """Logging level."""
        return os.getenv("LOG_LEVEL", "INFO")

    @property
    def headless(self) -> bool:
        return _env_flag("EXPORT_HEADLESS", bool(self.export_config.get("browser", {}).get("headless", True)))

    @property
    def viewport(self) -> Dict[str, int]:
        return self.export_config.get("browser", {}).get("viewport", {"width": 1600, "height": 1000})

    @property
    def echarts_cdn_url(self) -> str:
        return os.getenv("ECHARTS_CDN_URL", self.export_config["assets"].get("echarts_cdn_url", ""))

    @property
    def echarts_paths(self) -> List[Path]:
        return [self._resolve(path) for path in self.export_config["assets"].get("echarts_paths", [])]

    @property
    def logo_path(self) -> Optional[Path]:
        path = os.getenv("REPORT_LOGO_PATH") or self.export_config["assets"].get("logo_path")
        return self._resolve(path) if path else None

    @property
    def settle_delay(self) -> float:
        return float(self.export_config["readiness"].get("settle", 0.5))

    @property
    def transition_delay(self) -> float:
        return float(self.dashboard.get("transition_delay", 0.6))

    def get_readiness(self, kind: str) -> Dict[str, Any]:
        """Get readiness parameters for 'table', 'numeric' or 'chart'."""
        return dict(self.export_config["readiness"].get(kind, {}))

    def get_view_definitions(self) -> List[Dict[str, Any]]:
        """Get view definitions in card order."""
        return list(self.views_config.get("views", []))

    def get_style_concept(self, name: str) -> Optional[Dict[str, Any]]:
        """Get a style concept configuration by name."""
        return self.style_concepts.get(name)

    def get_toggle_labels(self) -> Dict[str, str]:
        return dict(self.export_config.get("toggles", {}))

    def _resolve(self, path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.project_root / path
