"""
Resolution of named style concepts to CSS text from the live page.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from comprehensive_report.config.settings import Settings
from comprehensive_report.data.models import ExportContext
from comprehensive_report.errors import StyleExtractionFailure


@dataclass
class StyleConcept:
    """Declarative target for style extraction."""
    name: str
    fallback_css: str
    path_signature: Optional[str] = None
    selector_signatures: List[str] = field(default_factory=list)
    min_length: int = 0
    candidate_paths: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, name: str, config: Dict[str, Any]) -> 'StyleConcept':
        return cls(
            name=name,
            fallback_css=str(config['fallback_css']),
            path_signature=config.get('path_signature'),
            selector_signatures=list(config.get('selector_signatures') or []),
            min_length=int(config.get('min_length', 0)),
            candidate_paths=list(config.get('candidate_paths') or []),
        )


class StyleExtractor:
    """
    Finds the CSS for a concept in the page's stylesheets.

    Strategies, in order: the whole sheet whose path matches the concept, the
    rules whose text mentions one of the concept's selectors, a direct fetch of
    the concept's source file, and finally the concept's built-in fallback.
    """

    def __init__(self, session, settings: Settings):
        self.session = session
        self.settings = settings
        self.logger = logging.getLogger(__name__)
        self._resolved: Dict[str, str] = {}

    def concept(self, name: str) -> Optional[StyleConcept]:
        config = self.settings.get_style_concept(name)
        return StyleConcept.from_config(name, config) if config else None

    async def extract(self, concept: StyleConcept, context: Optional[ExportContext] = None) -> str:
        """
        Return CSS for ``concept``; never raises and never returns an empty string.

        Args:
            concept: Concept to resolve
            context: Export context that records the fallback warning

        Returns:
            The extracted CSS, or the concept's fallback fragment
        """
        if concept.name in self._resolved:
            return self._resolved[concept.name]

        try:
            css = await self._resolve(concept)
        except StyleExtractionFailure as e:
            message = f"{e}; using built-in fallback styles"
            self.logger.warning(message)
            if context is not None:
                context.warn(message)
            css = concept.fallback_css

        self._resolved[concept.name] = css
        return css

    async def _resolve(self, concept: StyleConcept) -> str:
        sheets = await self.session.stylesheet_snapshot()
        accessible = [sheet for sheet in sheets if sheet.get('accessible', True)]
        skipped = len(sheets) - len(accessible)
        if skipped:
            self.logger.debug(f"Skipped {skipped} cross-origin stylesheets for {concept.name}")

        css = self._from_sheet_path(concept, accessible)
        if css:
            self.logger.info(f"Styles for {concept.name}: matched stylesheet path ({len(css)} chars)")
            return css

        css = self._from_rule_content(concept, accessible)
        if css:
            self.logger.info(f"Styles for {concept.name}: matched {concept.selector_signatures} ({len(css)} chars)")
            return css

        css = await self._from_fetch(concept)
        if css:
            self.logger.info(f"Styles for {concept.name}: fetched source file ({len(css)} chars)")
            return css

        raise StyleExtractionFailure(concept.name)

    def _from_sheet_path(self, concept: StyleConcept, sheets: List[Dict[str, Any]]) -> Optional[str]:
        """Widest stylesheet whose resource path contains the path signature."""
        if not concept.path_signature:
            return None

        best = ""
        for sheet in sheets:
            location = f"{sheet.get('href', '')} {sheet.get('ownerHref', '')}"
            if concept.path_signature not in location:
                continue
            text = "\n".join(sheet.get('rules') or [])
            if len(text) > len(best):
                best = text
        return best if best and len(best) >= concept.min_length else None

    def _from_rule_content(self, concept: StyleConcept, sheets: List[Dict[str, Any]]) -> Optional[str]:
        """Concatenation of every rule mentioning one of the selector signatures."""
        if not concept.selector_signatures:
            return None

        matched = []
        for sheet in sheets:
            for rule in sheet.get('rules') or []:
                if any(signature in rule for signature in concept.selector_signatures):
                    matched.append(rule)
        text = "\n".join(matched)
        return text if text and len(text) >= concept.min_length else None

    async def _from_fetch(self, concept: StyleConcept) -> Optional[str]:
        """First candidate path that answers with non-empty CSS."""
        for path in concept.candidate_paths:
            body = await self.session.fetch_text(path)
            if not body or not body.strip():
                continue
            # Single-page dev servers answer unknown paths with index.html
            if body.lstrip().startswith('<'):
                self.logger.debug(f"Ignoring HTML response for {path}")
                continue
            return body
        return None
