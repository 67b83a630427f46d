"""Human-readable match summary rendering for CLI output."""

from __future__ import annotations

from core.mapping.models import MappingReport

_MAX_LISTED_PATHS = 5


def render_match_summary(report: MappingReport) -> str:
    """Render one-screen human-readable match summary."""

    lines: list[str] = []
    lines.append("match_summary:")
    if report.failed:
        lines.append("result=FAILED")
        lines.append(f"error_type={report.error_type or 'unknown'}")
        lines.append("mapping: empty (no field will highlight)")
        return "\n".join(lines)

    lines.append("result=OK")
    lines.append(
        f"source_entries={report.source_entry_count} leaves={report.leaf_count} "
        f"matched={report.matched_count} unmatched={report.unmatched_count}"
    )

    if report.strategy_counts:
        top_items = sorted(report.strategy_counts.items(), key=lambda item: (-item[1], item[0]))
        lines.append("strategies: " + ", ".join(f"{name}={count}" for name, count in top_items))
    else:
        lines.append("strategies: none")

    unmatched = [detail.path for detail in report.details if not detail.matched]
    if unmatched:
        listed = ", ".join(unmatched[:_MAX_LISTED_PATHS])
        more = len(unmatched) - _MAX_LISTED_PATHS
        lines.append(f"unmatched: {listed}" + (f" (+{more} more)" if more > 0 else ""))
    else:
        lines.append("unmatched: none")

    lines.append("suggestion: " + _build_suggestion(report))
    return "\n".join(lines)


def _build_suggestion(report: MappingReport) -> str:
    if report.leaf_count == 0:
        return "payload has no scalar leaves"
    if report.source_entry_count == 0:
        return "no source entries with geometry were found; check the source tree shape"
    if report.unmatched_count == 0:
        return "none"
    return "unmatched leaves have no equal text in the source; use --report json for details"
