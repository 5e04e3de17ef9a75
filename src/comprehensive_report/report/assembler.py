"""
Assembly of the self-contained HTML report.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup

from comprehensive_report.config.settings import Settings
from comprehensive_report.data.models import VIEW_IDS, CapturedView, ExportContext, MetricDataset
from comprehensive_report.report.charts import ChartContext, build_chart_views, kpi_summary_blocks, period_legend

TEMPLATE_DIR = Path(__file__).parent / "templates"
STATIC_DIR = Path(__file__).parent / "static"

DIVISION_NAMES = {
    'FP': 'Flexible Packaging',
    'SB': 'Shopping Bags',
    'TF': 'Thermoforming Products',
    'HCM': 'Harwal Container Manufacturing',
}

CARD_GROUPS = ('primary', 'charts', 'tables')

_STYLE_CLOSE = re.compile(r"</(style)", re.IGNORECASE)
_SCRIPT_CLOSE = re.compile(r"</(script)", re.IGNORECASE)


def division_display_name(division: str) -> str:
    """Full division name for a dashboard division code such as ``FP-Product Group``."""
    if not division:
        return "Division"
    code = division.split('-')[0].strip()
    return DIVISION_NAMES.get(code.upper(), code or division)


def css_safe(text: Optional[str]) -> Markup:
    """Raw CSS for a <style> element; a closing tag inside it is neutralized."""
    return Markup(_STYLE_CLOSE.sub(r"<\\/\1", text or ""))


def script_safe(text: Optional[str]) -> Markup:
    """Raw JavaScript for a <script> element; a closing tag inside it is neutralized."""
    return Markup(_SCRIPT_CLOSE.sub(r"<\\/\1", text or ""))


class DocumentAssembler:
    """Renders the report template from the export results."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.logger = logging.getLogger(__name__)
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters['css_safe'] = css_safe
        self.env.filters['script_safe'] = script_safe

    def build_payload(self, context: ExportContext, dataset: MetricDataset,
                      cards: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Data the replay script reads at load time.

        Chart-bearing views carry blocks rebuilt from the dataset plus their
        live snapshot; every other view carries its captured markup.
        """
        chart_ctx = ChartContext(
            periods=list(dataset.periods),
            dataset=dataset,
            base_period=context.base_period,
        )
        chart_blocks = build_chart_views(chart_ctx)
        assets = self.settings.export_config["assets"]

        views = {}
        for card in cards:
            view_id = card['id']
            captured: CapturedView = context.views.get(view_id) or CapturedView.placeholder(
                view_id, card['title'], "This view was not captured"
            )
            entry = {
                'title': card['title'],
                'kind': 'chart' if view_id in chart_blocks else 'markup',
                'placeholder': captured.is_placeholder,
                'reason': captured.reason,
                'markup': '' if view_id in chart_blocks else captured.markup,
                'snapshot': captured.markup if view_id in chart_blocks else '',
                'blocks': chart_blocks.get(view_id, []),
            }
            if view_id == 'divisional-kpis' and captured.is_placeholder:
                entry['blocks'] = kpi_summary_blocks(chart_ctx)
            views[view_id] = entry

        return {
            'division': context.division,
            'views': views,
            'dataset': dataset.to_dict(),
            'guard': {
                'cdn': self.settings.echarts_cdn_url,
                'attempts': int(assets.get('guard_attempts', 50)),
                'interval': int(assets.get('guard_interval_ms', 100)),
            },
        }

    def _complete_cards(self, cards: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """One card per known view id, in the given order, missing ones appended."""
        by_id = {card['id']: dict(card) for card in cards}
        ordered = [by_id[card['id']] for card in cards if card['id'] in VIEW_IDS]
        for view_id in VIEW_IDS:
            if view_id not in by_id:
                ordered.append({
                    'id': view_id, 'title': view_id.replace('-', ' ').title(),
                    'icon': '', 'copy': '', 'group': 'tables', 'chart': False,
                })
        return ordered

    def render(self, context: ExportContext, dataset: MetricDataset, cards: List[Dict[str, Any]],
               logo_data_uri: Optional[str], chart_bundle: str,
               generated_at: Optional[datetime] = None) -> str:
        """
        Render the complete HTML document.

        Args:
            context: Export context with captured views and style fragments
            dataset: Recomputed metric dataset
            cards: Summary card fields, one per view
            logo_data_uri: Base64 logo, or None
            chart_bundle: Charting library source to inline
            generated_at: Timestamp shown in the header, default now

        Returns:
            The HTML text
        """
        cards = self._complete_cards(cards)
        payload = self.build_payload(context, dataset, cards)
        for card in cards:
            card['placeholder'] = payload['views'][card['id']]['placeholder']

        base = context.base_period
        comparison = next((c for c in context.visible_columns if c != base), None) if base else None
        notes = []
        if context.hide_sales_rep:
            notes.append("Sales rep view hidden")
        if context.hide_budget_forecast:
            notes.append("Budget and forecast columns hidden")

        template = self.env.get_template("report.html.j2")
        html = template.render(
            division_name=division_display_name(context.division),
            division_code=context.division,
            generated_at=(generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M"),
            base_period=base.display_label if base else None,
            comparison_period=comparison.display_label if comparison else None,
            legend=period_legend(dataset.periods),
            notes=notes,
            groups=[{'name': group, 'cards': [c for c in cards if c.get('group') == group]} for group in CARD_GROUPS],
            cards=cards,
            logo=logo_data_uri,
            report_css=(STATIC_DIR / "report.css").read_text(encoding='utf-8'),
            style_fragments=context.style_fragments,
            payload=payload,
            chart_bundle=chart_bundle,
            replay_js=(STATIC_DIR / "replay.js").read_text(encoding='utf-8'),
        )
        self.logger.info(f"Assembled report: {len(html)} characters, {len(cards)} views")
        return html
