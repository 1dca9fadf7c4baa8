"""Per-event data handed to the analysis components.

All objects are created by the input handler for one event and are only
valid while that event is processed.
"""
from dataclasses import dataclass
import math

from .trigger import TriggerDecision


@dataclass(frozen=True)
class Track:
    pt: float
    eta: float
    phi: float
    cluster_index: int = -1
    label: int | None = None
    filter_map: int = 0
    # Set for wrapper ("pico") tracks; the wrapped track owns the cluster link.
    inner: "Track | None" = None

    def unwrap(self) -> "Track":
        return self.inner if self.inner is not None else self


@dataclass(frozen=True)
class Cluster:
    energy: float
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    is_emcal: bool = True

    def momentum(self, vertex: tuple[float, float, float] = (0.0, 0.0, 0.0)) -> tuple[float, float, float]:
        """Return (energy, eta, phi) of the cluster as seen from the vertex.

        The cluster is treated as massless, so the momentum direction is the
        line from the vertex to the cluster position. phi is mapped to
        [0, 2pi) to match the track convention.
        """
        dx = self.position[0] - vertex[0]
        dy = self.position[1] - vertex[1]
        dz = self.position[2] - vertex[2]
        rho = math.hypot(dx, dy)
        if rho == 0.0:
            eta = math.copysign(math.inf, dz) if dz else 0.0
        else:
            eta = math.asinh(dz / rho)
        phi = math.atan2(dy, dx)
        if phi < 0:
            phi += 2 * math.pi
        return self.energy, eta, phi


@dataclass(frozen=True)
class MCParticle:
    pt: float
    eta: float
    phi: float
    physical_primary: bool = True


@dataclass(frozen=True)
class MCEvent:
    particles: tuple[MCParticle, ...] = ()
    pt_hard: float = 0.0
    cross_section: float = 0.0
    n_trials: int = 0

    def get_track(self, label: int | None) -> MCParticle | None:
        if label is None or label < 0 or label >= len(self.particles):
            return None
        return self.particles[label]


@dataclass(frozen=True)
class RecEvent:
    vertex_z: float = 0.0
    vertex_x: float = 0.0
    vertex_y: float = 0.0

    @property
    def primary_vertex(self) -> tuple[float, float, float]:
        return self.vertex_x, self.vertex_y, self.vertex_z


@dataclass(frozen=True)
class EventData:
    rec_event: RecEvent
    trigger_decision: TriggerDecision
    # None models a missing matched-track container.
    matched_tracks: tuple[Track, ...] | None = ()
    clusters: tuple[Cluster, ...] = ()
    calibrated_clusters: tuple[Cluster, ...] = ()
    mc_event: MCEvent | None = None
    weight: float = 1.0

    def cluster_at(self, index: int) -> Cluster | None:
        if index < 0 or index >= len(self.clusters):
            return None
        return self.clusters[index]
