#!/usr/bin/env python3
"""Compare the sparse histograms of two AnalysisResults.root files bin by bin."""
import argparse
from array import array
from dataclasses import dataclass
import os

ROOT = None


@dataclass
class Result:
    ref_keys: int
    cand_keys: int
    common: int
    missing: int
    extra: int
    content_diffs: int
    max_content_diff: float


def collect(file_path: str, list_path: str) -> dict:
    root_file = ROOT.TFile(os.path.expandvars(os.path.expanduser(file_path)))
    hist_list = root_file.Get(list_path)
    if not hist_list:
        raise RuntimeError(f"No list '{list_path}' in {file_path}")
    out = {}
    for obj in hist_list:
        if obj.InheritsFrom("THnBase"):
            clone = obj.Clone(f"{obj.GetName()}__cmp")
            out[obj.GetName()] = clone
    root_file.Close()
    return out


def _contents(hist) -> dict[tuple[int, ...], float]:
    ndim = hist.GetNdimensions()
    coords = array("i", [0] * ndim)
    out = {}
    for ibin in range(hist.GetNbins()):
        content = hist.GetBinContent(ibin, coords)
        out[tuple(coords)] = float(content)
    return out


def compare(ref_path: str, cand_path: str, list_path: str, content_tol: float) -> Result:
    global ROOT
    if ROOT is None:
        import ROOT as _ROOT
        ROOT = _ROOT

    ref = collect(ref_path, list_path)
    cand = collect(cand_path, list_path)

    common = sorted(set(ref) & set(cand))
    content_diffs = 0
    max_content_diff = 0.0
    for name in common:
        c1 = _contents(ref[name])
        c2 = _contents(cand[name])
        local_max = max((abs(c1.get(k, 0.0) - c2.get(k, 0.0)) for k in set(c1) | set(c2)), default=0.0)
        max_content_diff = max(max_content_diff, local_max)
        if local_max > content_tol:
            content_diffs += 1

    return Result(
        ref_keys=len(ref),
        cand_keys=len(cand),
        common=len(common),
        missing=len(set(ref) - set(cand)),
        extra=len(set(cand) - set(ref)),
        content_diffs=content_diffs,
        max_content_diff=max_content_diff,
    )


def main() -> int:
    parser = argparse.ArgumentParser(description="Compare sparse-histogram outputs for smoke regression")
    parser.add_argument("--reference", required=True)
    parser.add_argument("--candidate", required=True)
    parser.add_argument("--list", default="PtEMCalTriggerTask/ListHist", help="Path of the histogram list in the file")
    parser.add_argument("--content-tol", type=float, default=0.0)
    args = parser.parse_args()

    res = compare(args.reference, args.candidate, args.list, args.content_tol)
    print(f"ref_keys={res.ref_keys} cand_keys={res.cand_keys} common={res.common} missing={res.missing} extra={res.extra}")
    print(f"content_diffs={res.content_diffs} max_content_diff={res.max_content_diff}")

    ok = res.missing == 0 and res.extra == 0 and res.content_diffs == 0
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
