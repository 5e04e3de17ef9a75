"""
View definitions and the per-view accessors used by the capture orchestrator.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from comprehensive_report.capture.readiness import (
    ReadinessOutcome, build_predicate, merge_params, selectors_list, wait_until_ready,
)
from comprehensive_report.config.settings import Settings
from comprehensive_report.errors import ElementNotFound

CELL_LAYOUT_PROPS = [
    'border', 'padding', 'font-size', 'font-family', 'text-align', 'height',
    'line-height', 'vertical-align', 'width', 'min-width', 'max-width',
    'white-space', 'overflow', 'text-overflow',
]
ROW_LAYOUT_PROPS = ['border', 'height', 'width']


@dataclass
class SubView:
    """Nested presentation switch inside a view, e.g. table vs map."""
    label: Optional[str] = None
    command: Optional[str] = None
    args: List[Any] = field(default_factory=list)


@dataclass
class ViewDefinition:
    """Static description of one capturable dashboard view."""
    view_id: str
    title: str
    open_label: str
    readiness: Dict[str, Any]
    root_selector: str
    group: str = 'tables'
    icon: str = ''
    copy: str = ''
    style_concept: Optional[str] = None
    chart_bearing: bool = False
    sub_view: Optional[SubView] = None
    text_substitutions: Dict[str, str] = field(default_factory=dict)
    preserve_column_widths: bool = False
    strip_empty_header_rows: bool = False
    hidden_by: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any], default_root: str) -> 'ViewDefinition':
        sub_view = config.get('sub_view')
        return cls(
            view_id=config['view_id'],
            title=config['title'],
            open_label=config['open_label'],
            readiness=dict(config['readiness']),
            root_selector=config.get('root_selector') or default_root,
            group=config.get('group', 'tables'),
            icon=config.get('icon', ''),
            copy=config.get('copy', ''),
            style_concept=config.get('style_concept'),
            chart_bearing=bool(config.get('chart_bearing', False)),
            sub_view=SubView(**sub_view) if sub_view else None,
            text_substitutions=dict(config.get('text_substitutions') or {}),
            preserve_column_widths=bool(config.get('preserve_column_widths', False)),
            strip_empty_header_rows=bool(config.get('strip_empty_header_rows', False)),
            hidden_by=config.get('hidden_by'),
        )

    def to_card(self) -> Dict[str, Any]:
        """Summary card fields rendered in the report grid."""
        return {
            'id': self.view_id,
            'title': self.title,
            'icon': self.icon,
            'copy': self.copy,
            'group': self.group,
            'chart': self.chart_bearing,
        }


class ViewAccessor:
    """open / wait_ready / capture / close for one registered view."""

    def __init__(self, definition: ViewDefinition, session, settings: Settings):
        self.definition = definition
        self.session = session
        self.settings = settings
        self.logger = logging.getLogger(__name__)

    async def open(self) -> None:
        """Click the view's card, then drive its sub-view if it has one."""
        dashboard = self.settings.dashboard
        await self.session.click_text(dashboard['landing_selector'], self.definition.open_label)
        await asyncio.sleep(self.settings.transition_delay)

        sub_view = self.definition.sub_view
        if sub_view is None:
            return

        handled = False
        if sub_view.command:
            handled = await self.session.run_command(sub_view.command, sub_view.args)
        if not handled and sub_view.label:
            handled = await self.session.dispatch_pointer_sequence(dashboard['overlay_selector'], sub_view.label)
        if not handled:
            raise ElementNotFound(f"sub-view control for {self.definition.view_id}", sub_view.label)
        await asyncio.sleep(self.settings.transition_delay)

    async def wait_ready(self) -> ReadinessOutcome:
        """
        Block until the view's content satisfies its readiness predicate.

        Raises:
            ReadinessTimeout: when the attempt budget is exhausted
        """
        readiness = self.definition.readiness
        kind = readiness['kind']
        params = merge_params(self.settings.get_readiness(kind), readiness)
        predicate = build_predicate(kind, params)

        if kind == 'table':
            selector = params.get('selector') or f"{self.definition.root_selector} table"

            async def probe():
                return await self.session.count_table_rows(selector)
        elif kind == 'numeric':
            root = self.definition.root_selector
            container = params.get('container_selector')
            value_selectors = list(selectors_list(params.get('value_selectors')))

            async def probe():
                return await self.session.collect_value_texts(root, container, value_selectors)
        else:
            selector = params.get('selector') or f"{self.definition.root_selector} canvas"

            async def probe():
                return await self.session.count_rendered(selector)

        return await wait_until_ready(
            self.definition.view_id,
            probe,
            predicate,
            interval=float(params['interval']),
            max_attempts=int(params['max_attempts']),
            settle=self.settings.settle_delay,
        )

    async def capture(self) -> Dict[str, Any]:
        """
        Clone and post-process the view root.

        Raises:
            ElementNotFound: when the root is missing
        """
        result = await self.session.clone_view({
            'root': self.definition.root_selector,
            'substitutions': self.definition.text_substitutions,
            'preserveWidths': self.definition.preserve_column_widths,
            'stripEmptyHeaderRows': self.definition.strip_empty_header_rows,
            'cellProps': CELL_LAYOUT_PROPS,
            'rowProps': ROW_LAYOUT_PROPS,
        })
        if not result or not result.get('found'):
            raise ElementNotFound(f"root of view {self.definition.view_id}", self.definition.root_selector)
        if result.get('canvases'):
            self.logger.debug(f"{self.definition.view_id}: rasterized {result['canvases']} canvases")
        return result

    async def close(self) -> None:
        await self.session.dismiss_overlay()
        await asyncio.sleep(self.settings.transition_delay)


class ViewRegistry:
    """Lookup table from view id to its accessor, built once per export."""

    def __init__(self, settings: Settings, session):
        self.settings = settings
        default_root = settings.dashboard['overlay_body_selector']
        self.definitions: Dict[str, ViewDefinition] = {}
        self.accessors: Dict[str, ViewAccessor] = {}
        for config in settings.get_view_definitions():
            definition = ViewDefinition.from_config(config, default_root)
            self.definitions[definition.view_id] = definition
            self.accessors[definition.view_id] = ViewAccessor(definition, session, settings)

    @property
    def view_ids(self) -> List[str]:
        return list(self.definitions.keys())

    def get(self, view_id: str) -> ViewAccessor:
        try:
            return self.accessors[view_id]
        except KeyError:
            raise KeyError(f"No accessor registered for view '{view_id}'") from None

    def definition(self, view_id: str) -> ViewDefinition:
        return self.definitions[view_id]
