"""
Data-driven construction of the report's chart views.

Everything here is a pure function of a ChartContext: no page, no browser, no
settings. The output is JSON-serializable ECharts options and card models with
every label already formatted, so the replay script only has to draw them.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from comprehensive_report.config.metric_mapping import MetricMapper
from comprehensive_report.data.models import COLOR_SCHEMES, MetricDataset, PeriodColumn
from comprehensive_report.utils.calculations import (
    consecutive_deltas, delta_direction, format_compact, format_delta, format_per_kg,
    format_percent, percent_delta, percent_of, safe_ratio, to_fixed,
)

DEFAULT_PALETTE = ['#FFD700', '#288cfa', '#003366', '#91cc75', '#5470c6']
QUARTER_COLOR = '#FF6B35'
JANUARY_COLOR = '#FFD700'
YEAR_COLOR = '#288cfa'
BUDGET_COLOR = '#2E865F'

DELTA_COLORS = {'up': '#2E865F', 'down': '#dc3545', 'flat': '#888888'}
MAX_COST_PERIODS = 5


@dataclass
class ChartContext:
    """Value-only input to every chart builder."""
    periods: List[PeriodColumn]
    dataset: MetricDataset
    base_period: Optional[PeriodColumn] = None

    def series(self, metric: str) -> List[float]:
        return self.dataset.series(metric, self.periods)


def period_color(period: PeriodColumn, index: int) -> str:
    """Bar/gauge colour of a period."""
    if period.custom_color:
        scheme = COLOR_SCHEMES.get(period.custom_color)
        if scheme is not None:
            return scheme.primary
        if period.custom_color.startswith('#'):
            return period.custom_color
    if period.month in ('Q1', 'Q2', 'Q3', 'Q4'):
        return QUARTER_COLOR
    if period.month == 'January':
        return JANUARY_COLOR
    if period.month == 'Year':
        return YEAR_COLOR
    if str(period.type).lower() == 'budget':
        return BUDGET_COLOR
    return DEFAULT_PALETTE[index % len(DEFAULT_PALETTE)]


def text_color_for(background: str) -> str:
    """White text on dark backgrounds, near-black otherwise."""
    value = background.lstrip('#')
    if len(value) == 3:
        value = ''.join(ch * 2 for ch in value)
    try:
        r, g, b = int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)
    except (ValueError, IndexError):
        return '#222222'
    luminance = r * 0.299 + g * 0.587 + b * 0.114
    return '#ffffff' if luminance < 150 else '#222222'


def _delta_item(delta: Optional[float]) -> Dict[str, Any]:
    direction = delta_direction(delta)
    return {'text': format_delta(delta), 'direction': direction, 'color': DELTA_COLORS[direction]}


def _card_block(title: str, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {'type': 'cards', 'title': title, 'items': items}


def _period_card(period: PeriodColumn, index: int, value: str, sub: Optional[str] = None,
                 delta: Optional[float] = None, with_delta: bool = True) -> Dict[str, Any]:
    color = period_color(period, index)
    card = {
        'label': period.display_label,
        'value': value,
        'sub': sub,
        'color': color,
        'textColor': text_color_for(color),
    }
    if with_delta and index > 0:
        card['delta'] = _delta_item(delta)
    return card


def _rich_label_styles(font_size: int = 16) -> Dict[str, Any]:
    styles = {
        'num': {'fontSize': font_size, 'fontWeight': 'bold', 'color': '#222', 'lineHeight': font_size + 4},
    }
    for direction, color in DELTA_COLORS.items():
        styles[direction] = {'fontSize': font_size - 2, 'fontWeight': 'bold', 'color': color,
                             'lineHeight': font_size + 2}
    return styles


def sales_volume_blocks(ctx: ChartContext) -> List[Dict[str, Any]]:
    """Sales bar chart with consecutive deltas, plus the volume cards."""
    sales = ctx.series('sales')
    volume = ctx.series('salesVolume')
    deltas = consecutive_deltas(sales)

    data = []
    for idx, (period, value) in enumerate(zip(ctx.periods, sales)):
        label = f"{{num|{format_compact(value)}}}"
        if idx > 0:
            direction = delta_direction(deltas[idx])
            label = f"{{{direction}|{format_delta(deltas[idx])}}}\n" + label
        data.append({
            'value': value,
            'itemStyle': {'color': period_color(period, idx)},
            'label': {'formatter': label},
        })

    option = {
        'animation': False,
        'legend': {'show': False},
        'tooltip': {'show': False},
        'grid': {'left': '2%', 'right': '2%', 'bottom': 70, 'top': 60, 'containLabel': True},
        'xAxis': {
            'type': 'category',
            'data': [period.axis_label for period in ctx.periods],
            'axisLabel': {'fontWeight': 'bold', 'fontSize': 14, 'color': '#000', 'margin': 20},
            'axisLine': {'lineStyle': {'color': '#000', 'width': 2}},
            'axisTick': {'alignWithLabel': True, 'length': 4, 'lineStyle': {'color': '#ccc'}},
        },
        'yAxis': {'type': 'value', 'show': False},
        'series': [{
            'name': 'Sales',
            'type': 'bar',
            'barMaxWidth': 120,
            'data': data,
            'label': {'show': True, 'position': 'top', 'rich': _rich_label_styles()},
        }],
    }

    volume_deltas = consecutive_deltas(volume)
    cards = [
        _period_card(
            period, idx,
            value=f"{format_compact(vol)} kg",
            sub=f"Sales per kg: {to_fixed(safe_ratio(sales[idx], vol), 2)}",
            delta=volume_deltas[idx],
        )
        for idx, (period, vol) in enumerate(zip(ctx.periods, volume))
    ]
    return [
        {'type': 'chart', 'height': 460, 'option': option},
        _card_block('Sales Volume', cards),
    ]


def _gauge_option(period: PeriodColumn, index: int, percent: float) -> Dict[str, Any]:
    color = period_color(period, index)
    return {
        'animation': False,
        'series': [{
            'type': 'gauge',
            'startAngle': 180,
            'endAngle': 0,
            'min': 0,
            'max': 100,
            'radius': '95%',
            'center': ['50%', '72%'],
            'progress': {'show': True, 'width': 18, 'itemStyle': {'color': color}},
            'axisLine': {'lineStyle': {'width': 18, 'color': [[1, '#e6e6e6']]}},
            'axisTick': {'show': False},
            'splitLine': {'show': False},
            'axisLabel': {'show': False},
            'pointer': {'show': False},
            'anchor': {'show': False},
            'title': {'show': True, 'offsetCenter': [0, '25%'], 'fontSize': 13, 'color': '#333'},
            'detail': {
                'offsetCenter': [0, '-12%'],
                'fontSize': 24,
                'fontWeight': 'bold',
                'color': color,
                'formatter': format_percent(percent),
            },
            'data': [{'value': float(to_fixed(max(0.0, min(100.0, percent)), 1)), 'name': period.display_label}],
        }],
    }


def margin_analysis_blocks(ctx: ChartContext) -> List[Dict[str, Any]]:
    """One gauge per period for margin over material, plus absolute margin cards."""
    sales = ctx.series('sales')
    material = ctx.series('materialCost')
    volume = ctx.series('salesVolume')
    margins = [s - m for s, m in zip(sales, material)]
    margin_deltas = consecutive_deltas(margins)

    gauges = [
        _gauge_option(period, idx, percent_of(margins[idx], sales[idx]))
        for idx, period in enumerate(ctx.periods)
    ]
    cards = [
        _period_card(
            period, idx,
            value=format_compact(margins[idx]),
            sub=format_per_kg(safe_ratio(margins[idx], volume[idx])),
            delta=margin_deltas[idx],
        )
        for idx, period in enumerate(ctx.periods)
    ]
    return [
        {'type': 'chart-row', 'height': 260, 'options': gauges},
        _card_block('Margin over Material', cards),
    ]


def cost_breakdown_blocks(ctx: ChartContext, group: str, title: str,
                          mapper: Optional[MetricMapper] = None) -> List[Dict[str, Any]]:
    """
    Horizontal bars per cost line, one series per period, plus total cards.

    Args:
        ctx: Chart context
        group: Metric group ('manufacturing' or 'below_gp')
        title: Heading of the totals card block
        mapper: Metric mapping, default the standard one
    """
    mapper = mapper or MetricMapper()
    periods = ctx.periods[:MAX_COST_PERIODS]
    lines = mapper.get_metrics_by_group(group, include_totals=False)
    total_metric = mapper.get_total_metric(group)
    labels = [mapper.get_metric_info(name).label for name in lines]

    series = []
    for idx, period in enumerate(periods):
        sales = ctx.dataset.get(period.period_key, 'sales')
        data = []
        for name in lines:
            value = ctx.dataset.get(period.period_key, name)
            data.append({
                'value': value,
                'label': {'formatter': f"{format_compact(value)} | {format_percent(percent_of(value, sales))}"},
            })
        series.append({
            'name': period.display_label,
            'type': 'bar',
            'barGap': '10%',
            'itemStyle': {'color': period_color(period, idx)},
            'label': {'show': True, 'position': 'right', 'fontSize': 12, 'fontWeight': 'bold', 'color': '#222'},
            'data': data,
        })

    option = {
        'animation': False,
        'legend': {'show': True, 'top': 0, 'data': [p.display_label for p in periods]},
        'tooltip': {'show': False},
        'grid': {'left': '2%', 'right': '14%', 'top': 40, 'bottom': 10, 'containLabel': True},
        'xAxis': {'type': 'value', 'show': False},
        'yAxis': {
            'type': 'category',
            'inverse': True,
            'data': labels,
            'axisLabel': {'fontWeight': 'bold', 'fontSize': 14, 'color': '#000'},
        },
        'series': series,
    }

    totals = [ctx.dataset.get(p.period_key, total_metric) for p in periods] if total_metric else []
    total_deltas = consecutive_deltas(totals)
    cards = []
    for idx, period in enumerate(periods):
        sales = ctx.dataset.get(period.period_key, 'sales')
        volume = ctx.dataset.get(period.period_key, 'salesVolume')
        total = totals[idx] if totals else 0.0
        cards.append(_period_card(
            period, idx,
            value=format_compact(total),
            sub=f"{format_percent(percent_of(total, sales))} of sales | {format_per_kg(safe_ratio(total, volume))}",
            delta=total_deltas[idx] if totals else None,
        ))

    height = max(320, 90 * len(lines) * max(1, len(periods)) // 2)
    return [
        {'type': 'chart', 'height': height, 'option': option},
        _card_block(title, cards),
    ]


def combined_trends_blocks(ctx: ChartContext) -> List[Dict[str, Any]]:
    """Card rows for below-GP expenses and the three profit measures."""
    blocks = []
    for metric, title in (
        ('totalBelowGPExpenses', 'Total Below GP Expenses'),
        ('netProfit', 'Net Profit'),
        ('ebit', 'EBIT'),
        ('ebitda', 'EBITDA'),
    ):
        values = ctx.series(metric)
        sales = ctx.series('sales')
        deltas = consecutive_deltas(values)
        cards = [
            _period_card(
                period, idx,
                value=format_compact(values[idx]),
                sub=f"{format_percent(percent_of(values[idx], sales[idx]))} of sales",
                delta=deltas[idx],
            )
            for idx, period in enumerate(ctx.periods)
        ]
        blocks.append(_card_block(title, cards))
    return blocks


def kpi_summary_blocks(ctx: ChartContext) -> List[Dict[str, Any]]:
    """
    Headline KPIs for the base period against the period before it.

    Shown in place of the KPI view when its live capture failed.
    """
    if not ctx.periods:
        return []
    base = ctx.base_period if ctx.base_period in ctx.periods else ctx.periods[0]
    index = ctx.periods.index(base)
    previous = ctx.periods[index - 1] if index > 0 else None

    def value(period: Optional[PeriodColumn], metric: str) -> Optional[float]:
        return ctx.dataset.get(period.period_key, metric) if period is not None else None

    items = []
    for metric, label in (
        ('sales', 'Sales'),
        ('salesVolume', 'Sales Volume (kg)'),
        ('marginPerKg', 'Margin per kg'),
        ('netProfit', 'Net Profit'),
        ('ebitda', 'EBITDA'),
    ):
        current = value(base, metric)
        prior = value(previous, metric)
        text = to_fixed(current, 2) if metric == 'marginPerKg' else format_compact(current)
        item = {'label': label, 'value': text, 'sub': base.display_label,
                'color': '#103766', 'textColor': '#ffffff'}
        if prior is not None:
            item['delta'] = _delta_item(percent_delta(current, prior))
        items.append(item)
    return [_card_block('Key Figures', items)]


def build_chart_views(ctx: ChartContext, mapper: Optional[MetricMapper] = None) -> Dict[str, List[Dict[str, Any]]]:
    """Blocks for every chart-bearing view, keyed by view id."""
    mapper = mapper or MetricMapper()
    return {
        'sales-volume': sales_volume_blocks(ctx),
        'margin-analysis': margin_analysis_blocks(ctx),
        'manufacturing-cost': cost_breakdown_blocks(ctx, 'manufacturing', 'Total Direct Cost', mapper),
        'below-gp-expenses': cost_breakdown_blocks(ctx, 'below_gp', 'Total Below GP Expenses', mapper),
        'combined-trends': combined_trends_blocks(ctx),
    }


def period_legend(periods: Sequence[PeriodColumn]) -> List[Dict[str, str]]:
    """Colour legend entries shown under the report header."""
    return [
        {'label': period.display_label, 'color': period_color(period, idx),
         'textColor': text_color_for(period_color(period, idx))}
        for idx, period in enumerate(periods)
    ]
