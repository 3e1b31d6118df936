"""Progress reporting for long-running aggregations."""

from collections.abc import Callable

ProgressCallback = Callable[[int, str], None]

# Percentage ranges per phase
LIBRARY_END = 20
CATEGORY_RANGES = {
    "projects": (20, 50),
    "portfolios": (50, 65),
    "goals": (65, 75),
}
ENRICHMENT_RANGE = (75, 95)
DONE = 100


class ProgressReporter:
    """Forwards progress to a callback, never letting the percentage go down."""

    def __init__(self, callback: ProgressCallback | None = None):
        self.callback = callback
        self.percent = 0

    def update(self, percent: float, message: str) -> None:
        self.percent = max(self.percent, min(100, max(0, int(percent))))
        if self.callback:
            self.callback(self.percent, message)

    def span(self, start: int, end: int, done: int, total: int, message: str) -> None:
        """Report progress ``done/total`` mapped into the ``start..end`` range."""
        fraction = done / total if total else 1.0
        self.update(start + (end - start) * fraction, message)
