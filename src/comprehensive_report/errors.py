"""
Exception hierarchy for the report export pipeline.
"""

from typing import Optional


class ExportError(Exception):
    """Base class for every failure raised by the export pipeline."""


class ReadinessTimeout(ExportError):
    """A readiness predicate did not hold within its attempt budget."""

    def __init__(self, target: str, attempts: int, count: int = 0, ratio: float = 0.0):
        self.target = target
        self.attempts = attempts
        self.count = count
        self.ratio = ratio
        super().__init__(
            f"{target} not ready after {attempts} attempts "
            f"(last count={count}, matched ratio={ratio:.2f})"
        )


class ElementNotFound(ExportError):
    """An expected control, container or data accessor is missing from the page."""

    def __init__(self, description: str, selector: Optional[str] = None):
        self.description = description
        self.selector = selector
        message = f"Element not found: {description}"
        if selector:
            message += f" ({selector})"
        super().__init__(message)


class StyleExtractionFailure(ExportError):
    """Every extraction strategy failed for a style concept."""

    def __init__(self, concept: str):
        self.concept = concept
        super().__init__(f"No stylesheet source found for concept '{concept}'")


class AssetLoadFailure(ExportError):
    """The charting bundle or another embedded asset could not be obtained."""


class ComputationInvalid(ExportError):
    """The recomputed dataset looks like data that has not been generated yet."""


class ExportInProgress(ExportError):
    """A second export was started while one is still running."""
