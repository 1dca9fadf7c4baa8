from dataclasses import dataclass
from typing import Any, Protocol

from .binning import AxisDefinition, BinningComponent, define_axis
from .cuts import KineCuts
from .event_data import EventData


class HistogramSink(Protocol):
    def create_thnsparse(self, name: str, title: str, axes: list[AxisDefinition], option: str = "") -> Any: ...

    def fill_thnsparse(self, name: str, values: list[float] | tuple[float, ...], weight: float = 1.0) -> None: ...


class AnalysisComponent(Protocol):
    name: str

    def create_histos(self) -> None: ...

    def process(self, data: EventData) -> None: ...


@dataclass
class ComponentContext:
    """Services shared by the components of one task."""

    histos: HistogramSink
    binning: BinningComponent
    kine_cuts: KineCuts | None = None


def kinematic_axes(binning: BinningComponent, first: str = "pt") -> list[AxisDefinition]:
    """(first, eta, phi, zvertex, mbtrigger) axes used by all per-trigger histograms."""
    return [
        define_axis(first, binning.get_binning(first)),
        define_axis("eta", binning.get_binning("eta")),
        define_axis("phi", binning.get_binning("phi")),
        define_axis("zvertex", binning.get_binning("zvertex")),
        define_axis("mbtrigger", nbins=2, low=-0.5, high=1.5),
    ]


def min_bias_flag(data: EventData) -> float:
    return 1.0 if data.trigger_decision.is_min_bias() else 0.0
