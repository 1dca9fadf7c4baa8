from dataclasses import dataclass

from .settings import RuntimeConfig


@dataclass(frozen=True)
class BinningDimension:
    name: str
    edges: tuple[float, ...]

    @property
    def nbins(self) -> int:
        return len(self.edges) - 1

    @property
    def low_edge(self) -> float:
        return self.edges[0]

    @property
    def high_edge(self) -> float:
        return self.edges[-1]


class BinningComponent:
    """Named axis binnings shared by all components of a task."""

    def __init__(self) -> None:
        self._dimensions: dict[str, BinningDimension] = {}

    def set_binning(self, name: str, edges: list[float]) -> None:
        if len(edges) < 2:
            raise ValueError(f"Binning '{name}' needs at least 2 edges.")
        self._dimensions[name] = BinningDimension(name, tuple(float(e) for e in edges))

    def set_linear_binning(self, name: str, nbins: int, low: float, high: float) -> None:
        if nbins < 1:
            raise ValueError(f"Binning '{name}' needs at least 1 bin.")
        self.set_binning(name, [low + (high - low) * i / nbins for i in range(nbins + 1)])

    def get_binning(self, name: str) -> BinningDimension:
        try:
            return self._dimensions[name]
        except KeyError:
            raise ValueError(
                f"Unknown binning '{name}'. Available: {', '.join(sorted(self._dimensions)) or 'none'}."
            ) from None

    @classmethod
    def from_runtime_config(cls, runtime_config: RuntimeConfig) -> "BinningComponent":
        binning = cls()
        for name, edges in runtime_config.binning.items():
            binning.set_binning(name, edges)
        return binning


@dataclass(frozen=True)
class AxisDefinition:
    name: str
    edges: tuple[float, ...]
    title: str = ""

    @property
    def nbins(self) -> int:
        return len(self.edges) - 1


def define_axis(name: str, binning: BinningDimension | None = None, nbins: int = 0, low: float = 0.0, high: float = 0.0) -> AxisDefinition:
    if binning is not None:
        return AxisDefinition(name, tuple(binning.edges), name)
    if nbins < 1:
        raise ValueError(f"Axis '{name}' needs either a binning or nbins >= 1.")
    return AxisDefinition(name, tuple(low + (high - low) * i / nbins for i in range(nbins + 1)), name)
