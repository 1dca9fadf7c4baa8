import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - runtime compatibility path
    import tomli as tomllib


DEFAULTS_PATH = Path(__file__).parent / "defaults.toml"
REQUIRED_BINNINGS = ("pt", "eta", "phi", "zvertex")
TRIGGER_METHODS = ("string", "patches", "mixed")
NAME_MODES = ("direct", "combinatorial")
WEIGHT_MODES = ("none", "pthard", "xsec")


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        cfg = tomllib.load(f)
    if not isinstance(cfg, dict):
        raise ValueError(f"Invalid defaults TOML at {path}: top-level table is missing.")
    return cfg


_DEFAULT_CONFIG_CACHE: dict[str, Any] = {}


def default_config_template() -> dict[str, Any]:
    if not _DEFAULT_CONFIG_CACHE:
        _DEFAULT_CONFIG_CACHE.update(_load_toml(DEFAULTS_PATH))
    return copy.deepcopy(_DEFAULT_CONFIG_CACHE)


def load_config_file(path: str) -> dict[str, Any]:
    return _load_toml(Path(path))


def _required_table(table: dict[str, Any], key: str, context: str = "defaults") -> dict[str, Any]:
    value = table.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"Missing or invalid [{key}] table in {context} config")
    return value


def _required_value(table: dict[str, Any], key: str, context: str) -> Any:
    if key not in table:
        raise ValueError(f"Missing required key '{context}.{key}'")
    return table[key]


def _deep_merge_dict(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge_dict(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def merge_config(cfg: dict[str, Any] | None) -> dict[str, Any]:
    merged = default_config_template()
    if not isinstance(cfg, dict):
        return merged
    return _deep_merge_dict(merged, cfg)


def _range(raw: Any, context: str) -> tuple[float, float]:
    values = [float(v) for v in list(raw)]
    if len(values) != 2:
        raise ValueError(f"{context} must have 2 values: [min, max].")
    if values[0] > values[1]:
        raise ValueError(f"{context} has min > max: {values}.")
    return values[0], values[1]


def _choice(table: dict[str, Any], key: str, context: str, allowed: tuple[str, ...]) -> str:
    value = str(_required_value(table, key, context)).strip().lower()
    if value not in allowed:
        raise ValueError(f"Unsupported {context}.{key} '{value}'. Allowed: {', '.join(allowed)}.")
    return value


def binning_edges(table: dict[str, Any], name: str) -> list[float]:
    """Turn one [binning.<name>] table into a sorted list of bin edges."""
    context = f"binning.{name}"
    if "edges" in table:
        edges = [float(v) for v in list(table["edges"])]
    elif "segments" in table:
        edges = []
        for segment in list(table["segments"]):
            low, high, width = (float(v) for v in segment)
            if width <= 0:
                raise ValueError(f"{context}: segment width must be positive, got {width}.")
            if edges and abs(edges[-1] - low) > 1e-9:
                raise ValueError(f"{context}: segments are not contiguous at {low}.")
            nsteps = int(round((high - low) / width))
            start = 1 if edges else 0
            edges.extend(low + i * width for i in range(start, nsteps + 1))
    else:
        nbins = int(_required_value(table, "nbins", context))
        low = float(_required_value(table, "min", context))
        high = float(_required_value(table, "max", context))
        if nbins < 1:
            raise ValueError(f"{context}.nbins must be at least 1.")
        edges = [low + (high - low) * i / nbins for i in range(nbins + 1)]
    if len(edges) < 2:
        raise ValueError(f"{context} must contain at least 2 edges.")
    if any(b <= a for a, b in zip(edges, edges[1:])):
        raise ValueError(f"{context} edges must be strictly increasing.")
    return edges


@dataclass(frozen=True)
class RuntimePaths:
    events: str
    output: str
    output_folder: str
    log_file: str
    metadata_output: str

    @property
    def output_spec(self) -> str:
        return f"{self.output}:{self.output_folder}"


@dataclass(frozen=True)
class TrackComponentConfig:
    enabled: bool
    request_mc_true: bool
    swap_eta: bool
    trigger_method: str
    name_mode: str
    filter_bits: list[int]


@dataclass(frozen=True)
class ClusterComponentConfig:
    enabled: bool
    energy_range: tuple[float, float]
    trigger_method: str
    name_mode: str


@dataclass(frozen=True)
class WeightConfig:
    mode: str
    pthard_formula: str


@dataclass(frozen=True)
class RuntimeConfig:
    log_level: str
    is_mc: bool
    cut_eta: bool
    eta_cut: float
    binning: dict[str, list[float]]
    kine: dict[str, tuple[float, float]]
    tracks: TrackComponentConfig
    clusters: ClusterComponentConfig
    weights: WeightConfig
    paths: RuntimePaths


def current_runtime_config(cfg: dict[str, Any] | None = None) -> RuntimeConfig:
    merged = merge_config(cfg)

    run_cfg = _required_table(merged, "run", "config")
    path_cfg = _required_table(merged, "paths", "config")
    binning_cfg = _required_table(merged, "binning", "config")
    kine_cfg = _required_table(merged, "kine", "config")
    track_cfg = _required_table(merged, "tracks", "config")
    cluster_cfg = _required_table(merged, "clusters", "config")
    weight_cfg = _required_table(merged, "weights", "config")

    binning = {
        str(name): binning_edges(table, str(name))
        for name, table in binning_cfg.items()
        if isinstance(table, dict)
    }
    missing = [name for name in REQUIRED_BINNINGS if name not in binning]
    if missing:
        raise ValueError(f"Missing required binning tables: {', '.join(f'[binning.{m}]' for m in missing)}.")

    kine = {key: _range(_required_value(kine_cfg, key, "kine"), f"kine.{key}") for key in ("pt", "eta", "phi")}

    tracks = TrackComponentConfig(
        enabled=bool(track_cfg.get("enabled", True)),
        request_mc_true=bool(track_cfg.get("request_mc_true", False)),
        swap_eta=bool(track_cfg.get("swap_eta", False)),
        trigger_method=_choice(track_cfg, "trigger_method", "tracks", TRIGGER_METHODS),
        name_mode=_choice(track_cfg, "name_mode", "tracks", NAME_MODES),
        filter_bits=[int(v) for v in list(track_cfg.get("filter_bits", []))],
    )
    clusters = ClusterComponentConfig(
        enabled=bool(cluster_cfg.get("enabled", False)),
        energy_range=_range(_required_value(cluster_cfg, "energy_range", "clusters"), "clusters.energy_range"),
        trigger_method=_choice(cluster_cfg, "trigger_method", "clusters", TRIGGER_METHODS),
        name_mode=_choice(cluster_cfg, "name_mode", "clusters", NAME_MODES),
    )
    if clusters.enabled and "energy" not in binning:
        raise ValueError("Cluster component enabled but [binning.energy] is missing.")
    weights = WeightConfig(
        mode=_choice(weight_cfg, "mode", "weights", WEIGHT_MODES),
        pthard_formula=str(weight_cfg.get("pthard_formula", "1")),
    )

    paths = RuntimePaths(
        events=str(_required_value(path_cfg, "events", "paths")),
        output=str(_required_value(path_cfg, "output", "paths")),
        output_folder=str(_required_value(path_cfg, "output_folder", "paths")),
        log_file=str(path_cfg.get("log_file", "") or ""),
        metadata_output=str(path_cfg.get("metadata_output", "run_metadata.json")),
    )

    return RuntimeConfig(
        log_level=str(run_cfg.get("log_level", "INFO")),
        is_mc=bool(run_cfg.get("is_mc", False)),
        cut_eta=bool(run_cfg.get("cut_eta", False)),
        eta_cut=float(kine_cfg.get("eta_cut", 0.8)),
        binning=binning,
        kine=kine,
        tracks=tracks,
        clusters=clusters,
        weights=weights,
        paths=paths,
    )
