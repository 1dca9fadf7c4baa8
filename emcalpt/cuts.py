import logging
import math
from dataclasses import dataclass
from typing import Protocol

from .event_data import Track


LOGGER = logging.getLogger("emcalpt.cuts")


@dataclass(frozen=True)
class CutValueRange:
    """Inclusive [minimum, maximum] range; infinite limits leave a side open."""

    minimum: float = -math.inf
    maximum: float = math.inf

    def __post_init__(self) -> None:
        if self.minimum > self.maximum:
            raise ValueError(f"Invalid cut range: min {self.minimum} > max {self.maximum}.")

    def is_in_range(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


@dataclass(frozen=True)
class KineCuts:
    pt: CutValueRange = CutValueRange()
    eta: CutValueRange = CutValueRange()
    phi: CutValueRange = CutValueRange()

    def is_selected(self, track: Track) -> bool:
        return (
            self.pt.is_in_range(abs(track.pt))
            and self.eta.is_in_range(track.eta)
            and self.phi.is_in_range(track.phi)
        )


class TrackSelection(Protocol):
    def is_track_accepted(self, track: Track) -> bool: ...


class AcceptAllTracks:
    def is_track_accepted(self, track: Track) -> bool:
        return True


@dataclass(frozen=True)
class FilterBitSelection:
    """Accept tracks carrying at least one bit of the filter mask."""

    mask: int

    @classmethod
    def from_bits(cls, bits: list[int]) -> "FilterBitSelection":
        mask = 0
        for bit in bits:
            if bit < 0:
                raise ValueError(f"Filter bit must be non-negative, got {bit}.")
            mask |= 1 << bit
        return cls(mask)

    def is_track_accepted(self, track: Track) -> bool:
        return bool(track.unwrap().filter_map & self.mask)


def track_selection_from_bits(bits: list[int]) -> TrackSelection:
    return FilterBitSelection.from_bits(bits) if bits else AcceptAllTracks()


class SelectionChain:
    """Kinematic and track-quality predicates, evaluated in order.

    Evaluation stops at the first predicate that rejects the track.
    """

    def __init__(self, kine_cuts: KineCuts | None = None, track_selection: TrackSelection | None = None) -> None:
        self.kine_cuts = kine_cuts
        self.track_selection = track_selection

    def accept(self, track: Track) -> bool:
        if self.kine_cuts and not self.kine_cuts.is_selected(track):
            return False
        if self.track_selection and not self.track_selection.is_track_accepted(track):
            LOGGER.debug("Track not accepted pt=%.3f eta=%.3f", track.pt, track.eta)
            return False
        return True
