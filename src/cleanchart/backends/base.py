from abc import ABC, abstractmethod
from pathlib import Path

from ..canvas import Canvas, emit
from ..layout import LayoutConfig, TextMetrics, layout_chart
from ..models import Chart


class OutputBackend(ABC):
    """Abstract base class for all output formats."""

    extension: str = ""

    @classmethod
    @abstractmethod
    def can_handle(cls, fmt: str) -> bool:
        """Return True if this backend produces the given format."""

    @abstractmethod
    def metrics(self, config: LayoutConfig) -> TextMetrics:
        """Text metrics matching the fonts this backend draws with."""

    @abstractmethod
    def create_canvas(self, config: LayoutConfig) -> Canvas:
        """Return a fresh canvas for one chart."""

    @abstractmethod
    def finish(self, canvas: Canvas, chart: Chart) -> str | bytes | list[str]:
        """Turn a fully drawn canvas into the output document."""

    @abstractmethod
    def write(self, output, dest: Path) -> list[Path]:
        """Write *output* to *dest*; return every path written."""

    def render(self, chart: Chart, config: LayoutConfig | None = None) -> str | bytes | list[str]:
        """Convenience method: layout + emit + finish."""
        config = config or LayoutConfig()
        canvas = self.create_canvas(config)
        emit(layout_chart(chart, self.metrics(config), config), canvas)
        return self.finish(canvas, chart)
