import os
from pathlib import Path
from typing import Any

import ROOT


def expand(path: str) -> str:
    return os.path.expandvars(os.path.expanduser(str(path)))


def ensure_parent(path: str) -> None:
    Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)


def split_file_spec(file_spec: str) -> tuple[str, str]:
    """Split "file.root:folder" into its file name and folder ("" if absent)."""
    filename, _, folder = str(file_spec).partition(":")
    if not filename:
        raise ValueError(f"Invalid output specification '{file_spec}': missing file name.")
    return filename, folder


def write_list(obj: Any, file_spec: str, key: str, mode: str = "UPDATE") -> str:
    """Write a TList under key into the folder given by "file.root:folder"."""
    filename, folder = split_file_spec(file_spec)
    out_name = expand(filename)
    ensure_parent(out_name)
    out = ROOT.TFile(out_name, mode)
    if not out or out.IsZombie():
        raise RuntimeError(f"Cannot open output file {out_name}")
    try:
        target = out
        if folder:
            target = out.GetDirectory(folder) or out.mkdir(folder)
        target.cd()
        obj.Write(key, ROOT.TObject.kSingleKey)
    finally:
        out.Close()
    return out_name
