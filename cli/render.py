from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _fmt(value: Any) -> Any:
    if isinstance(value, float):
        return f"{value:.2f}"
    return value


def render_trend(trend: Dict[str, Any]) -> None:
    typer.echo(
        f"  - {trend.get('location')}: {trend.get('trend')} "
        f"({_fmt(trend.get('changeRate'))}/h, confidence {_fmt(trend.get('confidence'))}, "
        f"{trend.get('readingCount')} readings)"
    )


def render_buckets(title: str, buckets: Iterable[Dict[str, Any]]) -> None:
    items = list(buckets)
    typer.echo(f"{title}:")
    if not items:
        typer.echo("  (none)")
        return
    for bucket in items:
        typer.echo(
            f"  - {bucket.get('periodStart')} {bucket.get('location')}: "
            f"count={bucket.get('count')} avg={_fmt(bucket.get('average'))} "
            f"min={_fmt(bucket.get('min'))} max={_fmt(bucket.get('max'))}"
        )


def render_analysis(payload: Dict[str, Any]) -> None:
    metadata = payload.get("metadata") or {}
    date_range = metadata.get("dateRange") or {}
    echo_heading("Moisture Analysis")
    echo_key_values(
        [
            ("job_id", metadata.get("jobId")),
            ("reading_count", metadata.get("readingCount")),
            ("date_range", f"{date_range.get('start')} .. {date_range.get('end')}"),
            ("location", metadata.get("location") or "all"),
            ("generated_at", metadata.get("generatedAt")),
        ]
    )

    typer.echo()
    echo_heading("Trends")
    primary = payload.get("trends")
    if primary:
        typer.echo("primary:")
        render_trend(primary)
    location_trends = payload.get("locationTrends") or []
    if location_trends:
        typer.echo("by location:")
        for trend in location_trends:
            render_trend(trend)
    if not primary and not location_trends:
        typer.echo("No trend available.")
    unavailable = payload.get("unavailableLocations") or []
    if unavailable:
        typer.echo(f"insufficient data: {', '.join(unavailable)}")

    typer.echo()
    echo_heading("Hotspots")
    hotspots = payload.get("hotspots") or []
    if hotspots:
        for hotspot in hotspots:
            position = hotspot.get("position") or {}
            typer.echo(
                f"  - ({position.get('x')}, {position.get('y')}): "
                f"max={_fmt(hotspot.get('maxValue'))} "
                f"avg={_fmt(hotspot.get('averageValue'))} "
                f"readings={len(hotspot.get('readings') or [])}"
            )
    else:
        typer.echo("No hotspots detected.")

    statistics = payload.get("statistics") or {}
    summary = statistics.get("summary") or {}
    typer.echo()
    echo_heading("Statistics")
    echo_key_values(
        [
            ("count", summary.get("count")),
            ("average", _fmt(summary.get("average"))),
            ("median", _fmt(summary.get("median"))),
            ("min", _fmt(summary.get("min"))),
            ("max", _fmt(summary.get("max"))),
            ("standard_deviation", _fmt(summary.get("standardDeviation"))),
        ]
    )
    render_buckets("hourly", statistics.get("hourly") or [])
    render_buckets("daily", statistics.get("daily") or [])
