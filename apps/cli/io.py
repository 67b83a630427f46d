"""CLI I/O helpers for JSON input loading and atomic output writing."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.mapping.models import MappingReport


@dataclass(frozen=True)
class OutputPaths:
    """Fixed output artifact paths for a single mapping run."""

    mapping: Path
    match_report: Path
    groups: Path


def build_output_paths(out_dir: Path) -> OutputPaths:
    """Build fixed output file paths under out_dir."""

    return OutputPaths(
        mapping=out_dir / "out.mapping.json",
        match_report=out_dir / "out.match_report.json",
        groups=out_dir / "out.groups.json",
    )


def existing_output_files(paths: OutputPaths) -> list[Path]:
    """Return existing output files among fixed artifact paths."""

    candidates = [paths.mapping, paths.match_report, paths.groups]
    return [path for path in candidates if path.exists()]


def load_json_file(path: Path) -> Any:
    """Read one JSON document, raising ValueError with the file name on bad input."""

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc.msg}") from exc


def write_mapping_output_atomic(
    paths: OutputPaths,
    report: MappingReport,
    groups: dict[str, Any] | None = None,
) -> None:
    """Write mapping and report artifacts atomically using temporary files + replace."""

    paths.mapping.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_json(paths.mapping, report.mapping_payload())
    _atomic_write_json(paths.match_report, report.model_dump(mode="json", exclude={"mapping"}))
    if groups is not None:
        _atomic_write_json(paths.groups, groups)


def _atomic_write_json(path: Path, payload: dict[str, Any]) -> None:
    fd, raw_tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    tmp_path = Path(raw_tmp_path)

    try:
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, separators=(",", ":"))
        tmp_path.replace(path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
        raise
