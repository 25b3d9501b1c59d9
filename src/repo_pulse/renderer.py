"""Rich-based terminal report renderer with JSON/CSV/Markdown export."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import COMPARED_METRICS, ComparisonResult, RepoAnalysis

_METRIC_LABELS = {
    "commit_frequency": "Commit Frequency (7d)",
    "contributor_count": "Contributor Activity",
    "code_quality": "Code Quality",
    "issue_resolution_rate": "Issue Resolution Rate",
    "pr_merge_rate": "PR Merge Rate",
    "response_time": "Avg Response Time",
}

_BAND_STYLES = {
    "excellent": ("green", "Excellent"),
    "good": ("yellow", "Good"),
    "moderate": ("dark_orange", "Moderate"),
    "needs_improvement": ("red", "Needs Improvement"),
}

_ASSESSMENTS = {
    "excellent": "Healthy project with active maintenance.",
    "good": "Healthy overall, with room for improvement.",
    "moderate": "Average health; worth keeping an eye on.",
    "needs_improvement": "Low health; address the weaknesses below first.",
}

_TREND_ARROWS = {"increasing": "↑", "decreasing": "↓", "stable": "→"}


def format_compact_number(n: float) -> str:
    """Format 1234 as 1.2K, 3_400_000 as 3.4M and so on."""
    if n >= 1_000_000_000:
        return f"{n / 1_000_000_000:.1f}B"
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}K"
    return str(n)


def format_percentage(ratio: float, decimals: int | None = None) -> str:
    """Format a 0-1 ratio as a percentage; whole numbers drop the decimals."""
    pct = ratio * 100
    if decimals is None:
        if pct == int(pct):
            return f"{int(pct)}%"
        decimals = 2
    return f"{pct:.{decimals}f}%"


def format_hours(h: float | None) -> str:
    if not h:
        return "-"
    if h < 1:
        return f"{h * 60:.0f}m"
    if h < 24:
        return f"{h:.1f}h"
    return f"{h / 24:.1f}d"


def format_metric(name: str, value: float) -> str:
    if name in ("issue_resolution_rate", "pr_merge_rate"):
        return format_percentage(value, 1)
    if name == "response_time":
        return format_hours(value)
    if name == "commit_frequency":
        return str(int(value))
    return f"{value:.1f}"


def _make_bar(score: float, width: int = 20) -> str:
    filled = round(max(0.0, min(score, 100.0)) / 100 * width)
    return "█" * filled + "░" * (width - filled)


def _make_inline_bar(count: int, max_count: int, width: int = 15) -> str:
    if max_count == 0:
        return ""
    filled = round(count / max_count * width)
    return "█" * filled


def _write_to_file(content: str, output_file: str) -> None:
    """Write content to a file and print confirmation."""
    with open(output_file, "w", encoding="utf-8") as f:
        f.write(content)
    Console().print(f"Saved to {output_file}")


def _console(output_file: str | None) -> tuple[Console, io.StringIO | None]:
    if output_file:
        string_io = io.StringIO()
        return Console(file=string_io, force_terminal=False, width=120), string_io
    return Console(), None


def _band_text(band: str) -> str:
    style, label = _BAND_STYLES[band]
    return f"[bold {style}]{label}[/bold {style}]"


def render_analysis(result: RepoAnalysis, output_file: str | None = None) -> None:
    """Render a single repository analysis to the terminal using rich."""
    console, string_io = _console(output_file)
    snapshot = result.snapshot
    analysis = result.analysis

    console.print(Panel(
        Text(f"repo-pulse: {snapshot.name}\n{snapshot.url}", justify="center"),
        style="bold cyan",
    ))
    console.print()

    if result.failed_sources:
        console.print(
            f"[bold yellow]Warning:[/bold yellow] Could not fetch "
            f"{', '.join(result.failed_sources)}; scores treat them as empty."
        )
        console.print()

    console.print("[bold]Repository[/bold]")
    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column("label", style="dim")
    summary.add_column("value", style="bold")
    if snapshot.description:
        summary.add_row("Description", snapshot.description)
    summary.add_row("Language", snapshot.language)
    summary.add_row("Stars", format_compact_number(snapshot.stars))
    summary.add_row("Forks", format_compact_number(snapshot.forks))
    summary.add_row("Open Issues", format_compact_number(snapshot.open_issues))
    console.print(summary)
    console.print()

    band = result.report.overall
    console.print(
        f"[bold]Health Score[/bold]  {analysis.health_score:.1f}  "
        f"{_make_bar(analysis.health_score)}  {_band_text(band)}"
    )
    console.print(f"  [dim]{_ASSESSMENTS[band]}[/dim]")
    console.print()

    console.print("[bold]Metrics[/bold]")
    metrics_table = Table(show_header=True, header_style="bold")
    metrics_table.add_column("Metric")
    metrics_table.add_column("Value", justify="right")
    for name, label in _METRIC_LABELS.items():
        metrics_table.add_row(label, format_metric(name, getattr(analysis.metrics, name)))
    console.print(metrics_table)
    console.print()

    report = result.report
    for title, items, style in (
        ("Strengths", report.strengths, "green"),
        ("Weaknesses", report.weaknesses, "red"),
        ("Recommendations", report.recommendations, "cyan"),
    ):
        if items:
            console.print(f"[bold]{title}[/bold]")
            for item in items:
                console.print(f"  [{style}]•[/{style}] {item}")
            console.print()

    trend = result.commit_trend
    console.print(
        f"[bold]Commit Trend (12 weeks)[/bold]  {_TREND_ARROWS[trend.trend]} "
        f"{trend.trend} ({trend.change_rate:+.1f}%)"
    )
    weekly_table = Table(show_header=True, header_style="bold")
    weekly_table.add_column("Week", justify="right")
    weekly_table.add_column("Commits", justify="right")
    weekly_table.add_column("Bar")
    max_week = max(trend.weekly_commits, default=0)
    for i, count in enumerate(trend.weekly_commits):
        weeks_ago = len(trend.weekly_commits) - i
        weekly_table.add_row(f"-{weeks_ago}w", str(count), _make_inline_bar(count, max_week))
    console.print(weekly_table)
    console.print(
        f"  [dim]Daily volatility (std dev):[/dim] {result.volatility:.2f}"
        f"  [dim]Latest 7-day average:[/dim] "
        f"{result.moving_average[-1] if result.moving_average else 0:.2f}"
    )
    console.print()

    if result.forecast:
        console.print(f"[bold]Forecast ({len(result.forecast)} days)[/bold]")
        forecast_table = Table(show_header=True, header_style="bold")
        forecast_table.add_column("Date", no_wrap=True)
        forecast_table.add_column("Predicted", justify="right")
        for point in result.forecast:
            forecast_table.add_row(point.date.strftime("%Y-%m-%d"), f"{point.value:.1f}")
        console.print(forecast_table)
        console.print()

    if string_io is not None:
        _write_to_file(string_io.getvalue(), output_file)


def render_comparison(
    left: RepoAnalysis,
    right: RepoAnalysis,
    comparison: ComparisonResult,
    output_file: str | None = None,
) -> None:
    """Render a side-by-side comparison of two analyses."""
    console, string_io = _console(output_file)
    a, b = left.snapshot.name, right.snapshot.name

    console.print(Panel(Text(f"repo-pulse: {a} vs {b}", justify="center"), style="bold cyan"))
    console.print()

    table = Table(show_header=True, header_style="bold")
    table.add_column("Metric")
    table.add_column(a, justify="right")
    table.add_column(b, justify="right")
    table.add_column("Winner")
    table.add_column("Difference", justify="right")

    overall = comparison.overall
    table.add_row(
        "Health Score",
        f"{left.analysis.health_score:.1f}",
        f"{right.analysis.health_score:.1f}",
        f"[bold]{overall.winner}[/bold]",
        f"{overall.difference:.1f}",
    )
    for name in COMPARED_METRICS:
        metric = comparison.metrics[name]
        table.add_row(
            _METRIC_LABELS[name],
            format_metric(name, getattr(left.analysis.metrics, name)),
            format_metric(name, getattr(right.analysis.metrics, name)),
            metric.winner,
            format_metric(name, metric.difference),
        )
    console.print(table)
    console.print()

    if string_io is not None:
        _write_to_file(string_io.getvalue(), output_file)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(data: Any) -> str:
    return json.dumps(asdict(data), indent=2, ensure_ascii=False, default=_json_default)


def render_json(data: Any, output_file: str | None = None) -> None:
    """Render any result dataclass as JSON."""
    content = to_json(data)
    if output_file:
        _write_to_file(content, output_file)
    else:
        print(content)


def render_comparison_json(
    left: RepoAnalysis,
    right: RepoAnalysis,
    comparison: ComparisonResult,
    output_file: str | None = None,
) -> None:
    payload = {
        "repos": [asdict(left.health), asdict(right.health)],
        "comparison": asdict(comparison),
    }
    content = json.dumps(payload, indent=2, ensure_ascii=False, default=_json_default)
    if output_file:
        _write_to_file(content, output_file)
    else:
        print(content)


def render_csv(result: RepoAnalysis, output_file: str | None = None) -> None:
    """Render the daily commit series as CSV."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["date", "commits", "moving_avg"])
    averages = result.moving_average or tuple(p.value for p in result.analysis.trend_data)
    for point, avg in zip(result.analysis.trend_data, averages):
        writer.writerow([point.date.strftime("%Y-%m-%d"), int(point.value), round(avg, 2)])
    content = output.getvalue()
    if output_file:
        _write_to_file(content, output_file)
    else:
        print(content, end="")


def to_markdown(result: RepoAnalysis) -> str:
    snapshot = result.snapshot
    analysis = result.analysis
    metrics = analysis.metrics
    report = result.report
    lines = [
        f"# {snapshot.name} - Health Report",
        "",
        "## Repository",
        "",
        f"- **Name**: {snapshot.name}",
        f"- **Description**: {snapshot.description or 'No description'}",
        f"- **Language**: {snapshot.language}",
        f"- **Stars**: {snapshot.stars}",
        f"- **Forks**: {snapshot.forks}",
        f"- **Watchers**: {snapshot.watchers}",
    ]
    if snapshot.created_at:
        lines.append(f"- **Created**: {snapshot.created_at.strftime('%Y-%m-%d')}")
    if snapshot.updated_at:
        lines.append(f"- **Updated**: {snapshot.updated_at.strftime('%Y-%m-%d')}")
    lines += [
        "",
        "## Health Metrics",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Overall health | {analysis.health_score:.1f}% |",
        f"| Commits (last 7 days) | {metrics.commit_frequency} |",
        f"| Contributor activity | {metrics.contributor_count:.1f} |",
        f"| Code quality | {metrics.code_quality:.1f}% |",
        f"| Issue resolution rate | {metrics.issue_resolution_rate * 100:.1f}% |",
        f"| PR merge rate | {metrics.pr_merge_rate * 100:.1f}% |",
        f"| Average response time | {metrics.response_time:.1f} hours |",
        "",
        "## Assessment",
        "",
        f"**{_BAND_STYLES[report.overall][1]}**: {_ASSESSMENTS[report.overall]}",
        "",
    ]
    for title, items in (
        ("Strengths", report.strengths),
        ("Weaknesses", report.weaknesses),
        ("Recommendations", report.recommendations),
    ):
        if items:
            lines += [f"### {title}", ""] + [f"- {item}" for item in items] + [""]
    lines += [
        "## Commit Trend",
        "",
        f"{result.commit_trend.trend} ({result.commit_trend.change_rate:+.1f}%), "
        f"weekly commits: {', '.join(str(c) for c in result.commit_trend.weekly_commits)}",
        "",
    ]
    return "\n".join(lines)


def render_markdown(result: RepoAnalysis, output_file: str | None = None) -> None:
    content = to_markdown(result)
    if output_file:
        _write_to_file(content, output_file)
    else:
        print(content)
