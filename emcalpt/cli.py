import argparse
import copy
from datetime import datetime, timezone
import json
import logging
import subprocess
import sys
import time

from . import settings as s


LOGGER = logging.getLogger("emcalpt")


def _setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)] + ([logging.FileHandler(log_file)] if log_file else []),
        force=True,
    )


def _git_revision() -> str:
    try:
        out = subprocess.run(["git", "rev-parse", "HEAD"], check=True, capture_output=True, text=True)
        return out.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def _write_metadata(path: str, payload: dict) -> None:
    from .root_io import ensure_parent, expand

    out = expand(path)
    ensure_parent(out)
    with open(out, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True, default=str)


def run(cfg: dict, max_events: int = -1) -> int:
    runtime_cfg = s.current_runtime_config(cfg)
    _setup_logging(runtime_cfg.log_level, runtime_cfg.paths.log_file)
    LOGGER.info("Starting run events=%s output=%s", runtime_cfg.paths.events, runtime_cfg.paths.output_spec)

    from .event_source import JsonLinesEventSource
    from .manager import AnalysisManager, add_task_trigger_pt

    manager = AnalysisManager(common_file_name=runtime_cfg.paths.output)
    manager.set_input_handler(JsonLinesEventSource(runtime_cfg.paths.events))
    manager.set_mc_truth_handler(runtime_cfg.is_mc)
    add_task_trigger_pt(manager, runtime_cfg)

    t0 = time.time()
    n_events = manager.start_analysis(max_events)
    LOGGER.info("Finished run events=%d elapsed_sec=%.2f", n_events, time.time() - t0)
    return n_events


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="EMCal-triggered track and cluster spectra analysis")
    parser.add_argument("--config", help="Path to TOML config")
    parser.add_argument("--events", help="JSON-lines event file (overrides paths.events)")
    parser.add_argument("--output", help="Output ROOT file (overrides paths.output)")
    parser.add_argument("--max-events", type=int, default=-1, help="Stop after this many events")
    parser.add_argument("--dump-default-config", action="store_true", help="Print default config and exit")
    args = parser.parse_args(argv)

    if args.dump_default_config:
        print(s.default_config_template())
        return 0
    if not args.config:
        parser.error("--config is required")

    cfg = s.load_config_file(args.config)
    paths = cfg.setdefault("paths", {})
    if args.events:
        paths["events"] = args.events
    if args.output:
        paths["output"] = args.output
    merged = s.merge_config(cfg)

    started = datetime.now(timezone.utc)
    status = "success"
    error = ""
    n_events = 0
    try:
        n_events = run(merged, args.max_events)
    except Exception as exc:
        status = "failed"
        error = str(exc)
        raise
    finally:
        ended = datetime.now(timezone.utc)
        metadata = {
            "status": status,
            "error": error,
            "events": n_events,
            "started_utc": started.isoformat(),
            "ended_utc": ended.isoformat(),
            "duration_sec": (ended - started).total_seconds(),
            "git_revision": _git_revision(),
            "config": copy.deepcopy(merged),
        }
        try:
            _write_metadata(merged.get("paths", {}).get("metadata_output", "run_metadata.json"), metadata)
        except OSError as meta_exc:
            LOGGER.error("Failed to write metadata: %s", meta_exc)
    return 0


if __name__ == "__main__":
    sys.exit(main())
