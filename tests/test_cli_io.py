from __future__ import annotations

import json
from pathlib import Path

import pytest

from apps.cli import io as cli_io
from apps.cli.io import build_output_paths, existing_output_files, write_mapping_output_atomic
from core.geometry.models import BoundingBox
from core.mapping.models import MappingReport, MatchDetail


def _report() -> MappingReport:
    details = [
        MatchDetail(
            path="$.po",
            value="PO-1",
            strategy="exact",
            key="PO-1",
            candidate_count=1,
            source_path="document.metadata.po",
            source_text="PO-1",
            box=BoundingBox(x=1, y=2, width=3, height=4, page=1),
        ),
        MatchDetail(path="$.type", value="OR"),
    ]
    return MappingReport.from_details(details, source_entry_count=1)


def test_write_mapping_output_atomic_writes_artifacts(tmp_path: Path) -> None:
    paths = build_output_paths(tmp_path / "nested")

    write_mapping_output_atomic(paths, _report(), {"$": None})

    mapping = json.loads(paths.mapping.read_text(encoding="utf-8"))
    assert mapping == {"$.po": {"x": 1, "y": 2, "width": 3, "height": 4, "page": 1}, "$.type": None}
    report = json.loads(paths.match_report.read_text(encoding="utf-8"))
    assert report["details"][1] == {
        "path": "$.type",
        "value": "OR",
        "strategy": None,
        "key": None,
        "candidate_count": 0,
        "source_path": None,
        "source_text": None,
        "box": None,
    }
    assert json.loads(paths.groups.read_text(encoding="utf-8")) == {"$": None}
    assert existing_output_files(paths) == [paths.mapping, paths.match_report, paths.groups]


def test_write_mapping_output_atomic_cleans_tmp_on_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    paths = build_output_paths(tmp_path)

    def broken_dump(*_: object, **__: object) -> None:
        raise RuntimeError("dump failed")

    monkeypatch.setattr(cli_io.json, "dump", broken_dump)

    with pytest.raises(RuntimeError, match="dump failed"):
        write_mapping_output_atomic(paths, _report())

    assert not paths.mapping.exists()
    assert list(tmp_path.glob("*.tmp")) == []


def test_load_json_file_names_the_file(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text("{", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid JSON in .*bad.json"):
        cli_io.load_json_file(path)
