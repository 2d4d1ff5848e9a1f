# -*- coding: utf-8 -*-
import asyncio
import logging
import typing as t
from datetime import date
from pathlib import Path

import click
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from attendance_core import aggregator
from attendance_core.errors import AttendanceError
from attendance_core.export import export_csv, export_filename
from attendance_core.metrics import overall_percentage, summarize_record
from attendance_core.models import AttendanceSnapshot, AttendanceStatus, Credentials, DaywiseEntry
from attendance_core.projection import simulate, validate_target
from attendance_core.settings import DEFAULT_TARGET_PERCENTAGE, LOG_LEVEL
from attendance_core.timeline import UPCOMING_WINDOW_DAYS
from orchestrator.utils import (
    BAND_STYLES,
    canonical_course_keys,
    console,
    find_course,
    format_percentage,
    parse_planned_misses,
)

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    AttendanceStatus.PRESENT: "green",
    AttendanceStatus.ABSENT: "red",
    AttendanceStatus.SCHEDULED: "cyan",
    AttendanceStatus.UNKNOWN: "dim",
}


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else LOG_LEVEL,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def credential_options(func: t.Callable) -> t.Callable:
    """Add --portal-id and --secret; the secret is prompted for without echo."""
    func = click.option(
        "--secret",
        envvar="PORTAL_SECRET",
        prompt="Portal password",
        hide_input=True,
        help="Portal password (or PORTAL_SECRET).",
    )(func)
    func = click.option(
        "--portal-id",
        envvar="PORTAL_ID",
        prompt="Portal ID",
        help="Portal login ID (or PORTAL_ID).",
    )(func)
    return func


def target_option(func: t.Callable) -> t.Callable:
    return click.option(
        "--target",
        "-t",
        type=click.FloatRange(1, 100),
        default=DEFAULT_TARGET_PERCENTAGE,
        show_default=True,
        help="Target attendance percentage.",
    )(func)


def run_flow(awaitable: t.Awaitable[t.Any]) -> t.Any:
    """Run one request flow, turning domain errors into a clean exit."""
    try:
        return asyncio.run(awaitable)
    except AttendanceError as e:
        logger.debug("%s: %s", e.code, e)
        console.print(f"[red]Error:[/red] {e.user_message}")
        raise SystemExit(1)


# -----------------------------
# Rendering
# -----------------------------

def create_summary_table(snapshot: AttendanceSnapshot, target: float) -> Table:
    table = Table(title=f"Attendance (target {target:g}%)", show_header=True, header_style="bold magenta")
    table.add_column("Key", style="cyan")
    table.add_column("Course", style="white")
    table.add_column("Present/Total", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Can miss", justify="right")
    table.add_column("Must attend", justify="right")

    for record in snapshot.courses:
        metrics = summarize_record(record, target)
        style = BAND_STYLES[metrics["band"]]
        to_attend = metrics["classes_to_attend"]
        table.add_row(
            record.course_key,
            record.course_name,
            f"{record.present_classes}/{record.total_classes}",
            f"[{style}]{format_percentage(record.percentage)}[/{style}]",
            str(metrics["bunk_allowance"]),
            "unreachable" if to_attend is None else str(to_attend),
        )
    return table


def create_timeline_table(title: str, entries: t.Iterable[DaywiseEntry]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Date", style="yellow")
    table.add_column("Day")
    table.add_column("Time")
    table.add_column("Status")

    for entry in entries:
        style = STATUS_STYLES[entry.status]
        table.add_row(
            entry.date.strftime("%d/%m/%Y") if entry.date else "-",
            entry.weekday or "-",
            entry.time_slot or "-",
            f"[{style}]{entry.status.value}[/{style}]",
        )
    return table


# -----------------------------
# Commands
# -----------------------------

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
def main(verbose: bool) -> None:
    """Attendance summaries, timelines and what-if projections from the academic portal."""
    configure_logging(verbose)


@main.command()
@credential_options
@target_option
def summary(portal_id: str, secret: str, target: float) -> None:
    """Show per-course attendance against a target."""
    credentials = Credentials(portal_id=portal_id.strip(), secret=secret)
    snapshot = run_flow(aggregator.fetch_snapshot(credentials))

    student = snapshot.student
    console.print(
        Panel.fit(
            f"[bold blue]{student.full_name or 'Student'}[/bold blue] "
            f"({student.registration_number or '-'})\n"
            f"{student.branch_short_name or '-'} | Semester {student.semester_name or '-'}\n"
            f"Overall attendance: [bold]{format_percentage(overall_percentage(snapshot.courses))}[/bold]",
            border_style="blue",
        )
    )
    console.print(create_summary_table(snapshot, target))
    if snapshot.skipped:
        console.print(f"[yellow]{snapshot.skipped} course row(s) could not be read and were skipped.[/yellow]")


async def _daywise_flow(credentials: Credentials, key: str):
    snapshot = await aggregator.fetch_snapshot(credentials)
    course = find_course(snapshot.courses, key)
    return course, await aggregator.fetch_daywise(credentials, course)


@main.command()
@credential_options
@click.option("--course", "-c", "course_key", required=True, help="Course key as shown by 'summary'.")
def daywise(portal_id: str, secret: str, course_key: str) -> None:
    """Show past day-by-day attendance of one course."""
    credentials = Credentials(portal_id=portal_id.strip(), secret=secret)
    course, entries = run_flow(_daywise_flow(credentials, course_key))
    if not entries:
        console.print(f"No attendance recorded yet for {course.course_key}.")
        return
    console.print(create_timeline_table(f"{course.course_name} ({course.component_name})", entries))


async def _timeline_flow(credentials: Credentials, key: str, days: int):
    snapshot = await aggregator.fetch_snapshot(credentials)
    course = find_course(snapshot.courses, key)
    return course, await aggregator.fetch_course_timeline(credentials, course, days=days)


@main.command()
@credential_options
@click.option("--course", "-c", "course_key", required=True, help="Course key as shown by 'summary'.")
@click.option(
    "--days",
    type=click.IntRange(1, 180),
    default=UPCOMING_WINDOW_DAYS,
    show_default=True,
    help="How far ahead to look for upcoming classes.",
)
def timeline(portal_id: str, secret: str, course_key: str, days: int) -> None:
    """Show past attendance followed by upcoming classes of one course."""
    credentials = Credentials(portal_id=portal_id.strip(), secret=secret)
    course, entries = run_flow(_timeline_flow(credentials, course_key, days))
    upcoming = sum(1 for entry in entries if entry.is_upcoming)
    console.print(create_timeline_table(f"{course.course_name} ({course.component_name})", entries))
    console.print(f"{len(entries) - upcoming} past, {upcoming} upcoming in the next {days} days")


async def _projection_flow(credentials: Credentials, planned: dict[str, int], target: float):
    validate_target(target)
    snapshot = await aggregator.fetch_snapshot(credentials)
    planned = canonical_course_keys(planned, snapshot.courses)
    return snapshot, planned, simulate(snapshot.courses, planned, target)


@main.command()
@credential_options
@target_option
@click.option("--miss", "-m", "misses", multiple=True, metavar="KEY=N", help="Planned misses for a course.")
def project(portal_id: str, secret: str, target: float, misses: tuple[str, ...]) -> None:
    """Project attendance after planned misses."""
    try:
        planned = parse_planned_misses(misses)
    except AttendanceError as e:
        raise click.BadParameter(e.user_message, param_hint="--miss")

    credentials = Credentials(portal_id=portal_id.strip(), secret=secret)
    snapshot, planned, results = run_flow(_projection_flow(credentials, planned, target))

    unknown = set(planned) - {record.course_key for record in snapshot.courses}
    for key in sorted(unknown):
        console.print(f"[yellow]Ignoring unknown course key {key}[/yellow]")

    table = Table(title=f"Projection (target {target:g}%)", show_header=True, header_style="bold magenta")
    table.add_column("Key", style="cyan")
    table.add_column("Now", justify="right")
    table.add_column("Planned misses", justify="right")
    table.add_column("Projected", justify="right")
    table.add_column("Can still miss", justify="right")
    for result in results:
        style = "green" if result.is_safe else "red"
        table.add_row(
            result.record.course_key,
            format_percentage(result.record.percentage),
            str(result.planned_misses),
            f"[{style}]{format_percentage(result.projected_percentage)}[/{style}]",
            str(result.max_additional_safe_misses),
        )
    console.print(table)


@main.command()
@credential_options
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default=None,
    help="Where to write the CSV (default: attendance_summary_<date>.csv).",
)
def export(portal_id: str, secret: str, output: t.Optional[Path]) -> None:
    """Export the attendance summary as CSV."""
    credentials = Credentials(portal_id=portal_id.strip(), secret=secret)
    snapshot = run_flow(aggregator.fetch_snapshot(credentials))
    path = output or Path(export_filename(date.today()))
    path.write_text(export_csv(snapshot.courses), encoding="utf-8")
    console.print(f"Wrote {len(snapshot.courses)} course row(s) to [bold]{path}[/bold]")


if __name__ == "__main__":
    main()
