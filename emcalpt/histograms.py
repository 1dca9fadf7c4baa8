"""Named container of sparse histograms backed by ROOT THnSparseD."""
from array import array
import logging
from typing import Any

import ROOT

from .binning import AxisDefinition


LOGGER = logging.getLogger("emcalpt.histograms")


class HistogramContainer:
    def __init__(self, name: str = "histos") -> None:
        self.name = name
        self._histos: dict[str, Any] = {}
        self._ndims: dict[str, int] = {}

    def create_thnsparse(self, name: str, title: str, axes: list[AxisDefinition], option: str = "") -> Any:
        if name in self._histos:
            raise ValueError(f"Histogram '{name}' already exists in container '{self.name}'.")
        ndim = len(axes)
        hist = ROOT.THnSparseD(
            name,
            title,
            ndim,
            array("i", [axis.nbins for axis in axes]),
            array("d", [axis.edges[0] for axis in axes]),
            array("d", [axis.edges[-1] for axis in axes]),
        )
        for i, axis in enumerate(axes):
            root_axis = hist.GetAxis(i)
            root_axis.Set(axis.nbins, array("d", axis.edges))
            root_axis.SetName(axis.name)
            root_axis.SetTitle(axis.title or axis.name)
        if "s" in option:
            hist.Sumw2()
        self._histos[name] = hist
        self._ndims[name] = ndim
        LOGGER.debug("Created THnSparse %s with %d axes", name, ndim)
        return hist

    def get(self, name: str) -> Any:
        try:
            return self._histos[name]
        except KeyError:
            raise KeyError(f"Histogram '{name}' not found in container '{self.name}'.") from None

    def fill_thnsparse(self, name: str, values: list[float] | tuple[float, ...], weight: float = 1.0) -> None:
        hist = self.get(name)
        if len(values) != self._ndims[name]:
            raise RuntimeError(
                f"Dimension mismatch filling '{name}': got {len(values)} values, histogram has {self._ndims[name]} axes."
            )
        hist.Fill(array("d", values), weight)

    def bin_content(self, name: str, values: list[float] | tuple[float, ...]) -> float:
        hist = self.get(name)
        ibin = hist.GetBin(array("d", values), False)
        return float(hist.GetBinContent(ibin)) if ibin >= 0 else 0.0

    def entries(self, name: str) -> float:
        return float(self.get(name).GetEntries())

    def merge(self, other: "HistogramContainer") -> None:
        """Add other's histograms bin by bin; both must hold the same set."""
        if set(self._histos) != set(other._histos):
            raise RuntimeError(f"Cannot merge container '{other.name}' into '{self.name}': histogram sets differ.")
        for name, hist in self._histos.items():
            hist.Add(other._histos[name])

    def to_list(self) -> Any:
        out = ROOT.TList()
        out.SetName(self.name)
        out.SetOwner(False)
        for hist in self._histos.values():
            out.Add(hist)
        return out
