"""
Assets embedded into the report: the logo and the charting library bundle.
"""

import base64
import logging
import mimetypes
from pathlib import Path
from typing import Optional

from comprehensive_report.config.settings import Settings
from comprehensive_report.errors import AssetLoadFailure

# A real bundle is several hundred kilobytes; anything tiny is an error page
MIN_BUNDLE_LENGTH = 10_000


class AssetLoader:
    """Loads and encodes the assets a report needs."""

    def __init__(self, settings: Settings, session=None):
        self.settings = settings
        self.session = session
        self.logger = logging.getLogger(__name__)

    def load_logo(self, path: Optional[Path] = None) -> Optional[str]:
        """
        Read the logo image as a base64 data URI.

        Returns:
            The data URI, or None when no logo file is configured or present
        """
        logo_path = Path(path) if path else self.settings.logo_path
        if logo_path is None or not logo_path.exists():
            self.logger.warning(f"Logo not found at {logo_path}, report header will have no logo")
            return None

        mime_type = mimetypes.guess_type(logo_path.name)[0] or 'image/png'
        encoded = base64.b64encode(logo_path.read_bytes()).decode('ascii')
        self.logger.info(f"Embedded logo {logo_path.name} ({len(encoded)} base64 chars)")
        return f"data:{mime_type};base64,{encoded}"

    async def load_chart_bundle(self) -> str:
        """
        Charting library source, from a local copy or the CDN mirror.

        Raises:
            AssetLoadFailure: when no source yields a usable bundle
        """
        for path in self.settings.echarts_paths:
            if path.exists():
                text = path.read_text(encoding='utf-8')
                if len(text) >= MIN_BUNDLE_LENGTH:
                    self.logger.info(f"Using local chart bundle {path}")
                    return text
                self.logger.warning(f"Ignoring truncated chart bundle at {path}")

        url = self.settings.echarts_cdn_url
        if url and self.session is not None:
            self.logger.info(f"Downloading chart bundle from {url}")
            body = await self.session.fetch_bytes(url)
            if body and len(body) >= MIN_BUNDLE_LENGTH:
                return body.decode('utf-8')

        tried = [str(p) for p in self.settings.echarts_paths] + ([url] if url else [])
        raise AssetLoadFailure(f"Charting library bundle could not be loaded from any of: {', '.join(tried)}")
