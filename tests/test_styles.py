"""
Unit tests for style extraction.
"""

import asyncio
import pytest
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from comprehensive_report.capture.styles import StyleConcept, StyleExtractor
from comprehensive_report.data.models import ExportContext

LONG_RULES = [f".pl-table tr:nth-child({i}) td {{ padding: {i}px; }}" for i in range(80)]


@pytest.fixture
def concept():
    return StyleConcept(
        name='pl-financial',
        fallback_css='table{border-collapse:collapse}',
        path_signature='PLTableStyles.css',
        selector_signatures=['.pl-table'],
        min_length=200,
        candidate_paths=['/src/PLTableStyles.css', 'PLTableStyles.css'],
    )


class TestStyleExtractor:
    """Test cases for StyleExtractor."""

    def test_matches_sheet_by_path(self, fake_session, settings, concept):
        fake_session.sheets = [
            {'href': 'http://localhost/static/other.css', 'rules': ['.a{color:red}'], 'accessible': True},
            {'href': 'http://localhost/src/PLTableStyles.css', 'rules': LONG_RULES, 'accessible': True},
        ]
        css = asyncio.run(StyleExtractor(fake_session, settings).extract(concept))

        assert css == "\n".join(LONG_RULES)

    def test_path_match_below_minimum_falls_through(self, fake_session, settings, concept):
        fake_session.sheets = [
            {'href': 'http://localhost/src/PLTableStyles.css', 'rules': ['.x{}'], 'accessible': True},
            {'href': None, 'ownerHref': None, 'rules': LONG_RULES + ['.other{}'], 'accessible': True},
        ]
        css = asyncio.run(StyleExtractor(fake_session, settings).extract(concept))

        assert css == "\n".join(LONG_RULES)
        assert '.other{}' not in css

    def test_cross_origin_sheets_are_skipped(self, fake_session, settings, concept):
        fake_session.sheets = [
            {'href': 'https://cdn.example.com/PLTableStyles.css', 'rules': LONG_RULES, 'accessible': False},
        ]
        fake_session.fetchable['PLTableStyles.css'] = ".pl-table{width:100%}" * 20
        css = asyncio.run(StyleExtractor(fake_session, settings).extract(concept))

        assert css.startswith(".pl-table{width:100%}")
        assert fake_session.fetched == ['/src/PLTableStyles.css', 'PLTableStyles.css']

    def test_fetch_ignores_html_responses(self, fake_session, settings, concept):
        fake_session.fetchable['/src/PLTableStyles.css'] = "<!doctype html><html></html>"
        fake_session.fetchable['PLTableStyles.css'] = ".pl-table{color:#000}"
        css = asyncio.run(StyleExtractor(fake_session, settings).extract(concept))

        assert css == ".pl-table{color:#000}"

    def test_fallback_records_warning(self, fake_session, settings, concept):
        context = ExportContext()
        css = asyncio.run(StyleExtractor(fake_session, settings).extract(concept, context))

        assert css == concept.fallback_css
        assert len(context.warnings) == 1
        assert 'pl-financial' in context.warnings[0]

    def test_result_is_cached(self, fake_session, settings, concept):
        extractor = StyleExtractor(fake_session, settings)
        first = asyncio.run(extractor.extract(concept))
        fake_session.fetchable['PLTableStyles.css'] = ".late{}"
        second = asyncio.run(extractor.extract(concept))

        assert first == second == concept.fallback_css

    def test_configured_concepts_have_fallbacks(self, fake_session, settings):
        extractor = StyleExtractor(fake_session, settings)
        for name in ('kpi', 'overlay', 'pl-financial', 'product-group',
                     'sales-rep', 'sales-customer', 'sales-country'):
            css = asyncio.run(extractor.extract(extractor.concept(name)))
            assert css.strip()

        assert extractor.concept('missing') is None
