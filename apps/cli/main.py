"""Typer CLI entrypoint for sourcelink."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any, Literal, cast

import typer

from apps.cli.format_human import render_match_summary
from apps.cli.io import (
    build_output_paths,
    existing_output_files,
    load_json_file,
    write_mapping_output_atomic,
)
from core.mapping.groups import group_boxes
from core.mapping.models import MappingReport, MatchPolicy
from core.mapping.policy_loader import load_policy
from core.orchestrator.pipeline import build_mapping_report
from core.source.extractor import extract_source_entries

app = typer.Typer(help="Source-to-payload bounding box mapping CLI", rich_markup_mode=None)
ReportMode = Literal["human", "json", "both"]

_EXIT_OK = 0
_EXIT_ERROR = 1
_EXIT_MAPPING_FAILED = 2


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep `sourcelink map` as explicit command form."""


@app.command("map")
def map_command(
    source: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    payload: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    out_dir: Annotated[Path, typer.Option()] = Path("."),
    policy: Annotated[Path | None, typer.Option()] = None,
    report: Annotated[str, typer.Option()] = "human",
    groups: Annotated[
        bool, typer.Option("--groups", help="Also write out.groups.json with container boxes.")
    ] = False,
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite outputs when they already exist.")
    ] = False,
    no_overwrite: Annotated[
        bool,
        typer.Option(
            "--no-overwrite",
            help="Fail when outputs already exist.",
        ),
    ] = False,
) -> None:
    """Map payload leaf paths to source bounding boxes and write output artifacts."""

    normalized_report = report.lower().strip()
    if normalized_report not in {"human", "json", "both"}:
        typer.echo("ERROR: --report must be one of: human, json, both.")
        raise typer.Exit(code=_EXIT_ERROR)
    report_mode = cast(ReportMode, normalized_report)

    if force and no_overwrite:
        typer.echo("ERROR: --force and --no-overwrite cannot be used together.")
        raise typer.Exit(code=_EXIT_ERROR)

    paths = build_output_paths(out_dir)
    existing = existing_output_files(paths)
    if existing and no_overwrite:
        typer.echo("ERROR: outputs already exist and --no-overwrite is enabled.")
        raise typer.Exit(code=_EXIT_ERROR)
    if existing:
        names = ", ".join(path.name for path in existing)
        typer.echo(f"INFO: overwriting existing outputs: {names}")

    failure_stage = "load_policy"
    try:
        policy_model = load_policy(policy)
        failure_stage = "load_source"
        source_tree = load_json_file(source)
        failure_stage = "load_payload"
        payload_tree = load_json_file(payload)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR({failure_stage}): {type(exc).__name__}: {exc}")
        raise typer.Exit(code=_EXIT_ERROR) from exc

    mapping_report = build_mapping_report(payload_tree, source_tree, policy_model)
    groups_payload = (
        _build_groups_payload(mapping_report, payload_tree, policy_model) if groups else None
    )

    if report_mode in {"human", "both"}:
        typer.echo(render_match_summary(mapping_report))
    if report_mode in {"json", "both"}:
        typer.echo(
            json.dumps(
                mapping_report.model_dump(mode="json", exclude={"details"}),
                ensure_ascii=False,
                separators=(",", ":"),
            )
        )

    try:
        write_mapping_output_atomic(paths, mapping_report, groups_payload)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: write output failed: {exc}")
        raise typer.Exit(code=_EXIT_ERROR) from exc

    if mapping_report.failed:
        typer.echo("ERROR: mapping failed; wrote empty mapping")
        raise typer.Exit(code=_EXIT_MAPPING_FAILED)

    typer.echo("INFO: success")
    raise typer.Exit(code=_EXIT_OK)


@app.command("entries")
def entries_command(
    source: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    policy: Annotated[Path | None, typer.Option()] = None,
) -> None:
    """Print extracted source entries as JSON lines."""

    try:
        policy_model = load_policy(policy)
        entries = extract_source_entries(
            load_json_file(source), max_depth=policy_model.max_depth
        )
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=_EXIT_ERROR) from exc

    for entry in entries:
        typer.echo(json.dumps(entry.to_payload(), ensure_ascii=False, separators=(",", ":")))


def _build_groups_payload(
    report: MappingReport, payload_tree: Any, policy: MatchPolicy
) -> dict[str, Any]:
    if report.failed:
        return {}
    boxes = group_boxes(
        report.mapping,
        payload_tree,
        root_path=policy.root_path,
        max_depth=policy.max_depth,
        page_policy=policy.page_policy,
    )
    return {path: (box.to_payload() if box is not None else None) for path, box in boxes.items()}


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
