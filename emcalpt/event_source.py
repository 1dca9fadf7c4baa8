"""JSON-lines event input.

Each line holds one event:

    {"vertex_z": 0.1,
     "trigger": {"min_bias": true, "string": ["EMCJHigh"], "patches": []},
     "tracks": [{"pt": 5.0, "eta": 0.2, "phi": 1.0, "cluster": -1, "label": 3,
                 "filter_map": 16, "inner": {...}}],
     "clusters": [{"energy": 2.0, "position": [x, y, z], "emcal": true}],
     "calibrated_clusters": [...],
     "mc": {"particles": [{"pt": 5.1, "eta": 0.2, "phi": 1.0, "primary": true}],
            "pt_hard": 12.0, "cross_section": 1e-3, "n_trials": 10}}

A missing "tracks" key models an event without matched-track container.
Trigger types other than EMCJHigh, EMCJLow, EMCGHigh and EMCGLow are dropped.
"""
import json
import logging
import os
from typing import Any, Iterator

from .event_data import Cluster, EventData, MCEvent, MCParticle, RecEvent, Track
from .trigger import TRIGGER_TYPES, TriggerDecision


LOGGER = logging.getLogger("emcalpt.input")


def _track(raw: dict[str, Any]) -> Track:
    inner = raw.get("inner")
    return Track(
        pt=float(raw["pt"]),
        eta=float(raw["eta"]),
        phi=float(raw["phi"]),
        cluster_index=int(raw.get("cluster", -1)),
        label=None if raw.get("label") is None else int(raw["label"]),
        filter_map=int(raw.get("filter_map", 0)),
        inner=_track(inner) if isinstance(inner, dict) else None,
    )


def _cluster(raw: dict[str, Any]) -> Cluster:
    x, y, z = (float(v) for v in raw.get("position", (0.0, 0.0, 0.0)))
    return Cluster(energy=float(raw["energy"]), position=(x, y, z), is_emcal=bool(raw.get("emcal", True)))


def _mc_event(raw: dict[str, Any]) -> MCEvent:
    return MCEvent(
        particles=tuple(
            MCParticle(
                pt=float(p["pt"]),
                eta=float(p["eta"]),
                phi=float(p["phi"]),
                physical_primary=bool(p.get("primary", True)),
            )
            for p in raw.get("particles", [])
        ),
        pt_hard=float(raw.get("pt_hard", 0.0)),
        cross_section=float(raw.get("cross_section", 0.0)),
        n_trials=int(raw.get("n_trials", 0)),
    )


def _trigger_types(raw: Any, source: str) -> frozenset[str]:
    fired = {str(t) for t in raw or ()}
    unknown = fired - set(TRIGGER_TYPES)
    if unknown:
        LOGGER.debug("Ignoring unknown %s trigger types %s", source, sorted(unknown))
    return frozenset(fired - unknown)


def event_from_dict(raw: dict[str, Any]) -> EventData:
    trigger = raw.get("trigger", {})
    decision = TriggerDecision(
        min_bias=bool(trigger.get("min_bias", False)),
        from_string=_trigger_types(trigger.get("string"), "string"),
        from_patches=_trigger_types(trigger.get("patches"), "patch"),
    )
    tracks = raw.get("tracks")
    mc = raw.get("mc")
    return EventData(
        rec_event=RecEvent(
            vertex_z=float(raw.get("vertex_z", 0.0)),
            vertex_x=float(raw.get("vertex_x", 0.0)),
            vertex_y=float(raw.get("vertex_y", 0.0)),
        ),
        trigger_decision=decision,
        matched_tracks=None if tracks is None else tuple(_track(t) for t in tracks),
        clusters=tuple(_cluster(c) for c in raw.get("clusters", [])),
        calibrated_clusters=tuple(_cluster(c) for c in raw.get("calibrated_clusters", [])),
        mc_event=_mc_event(mc) if isinstance(mc, dict) else None,
    )


class JsonLinesEventSource:
    data_type = "JSON"

    def __init__(self, path: str) -> None:
        self.path = os.path.expandvars(os.path.expanduser(str(path)))

    def __iter__(self) -> Iterator[EventData]:
        LOGGER.debug("Reading events from %s", self.path)
        with open(self.path, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                try:
                    raw = json.loads(line)
                except json.JSONDecodeError as exc:
                    raise ValueError(f"{self.path}:{lineno}: invalid event record: {exc}") from exc
                yield event_from_dict(raw)
