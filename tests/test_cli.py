"""Tests for the attendance CLI, run against the mock portal."""
import functools

import pytest
from click.testing import CliRunner

from attendance_core import aggregator
from orchestrator.run import main
from services.mock_portal import app as mock_portal

LOGIN = ["--portal-id", mock_portal.MOCK_PORTAL_ID, "--secret", mock_portal.MOCK_PORTAL_SECRET]


@pytest.fixture(autouse=True)
def mock_portal_flows(monkeypatch, portal_settings, portal_transport) -> None:
    """Point every request flow at the mock portal."""
    for name in ("fetch_snapshot", "fetch_daywise", "fetch_course_timeline", "fetch_projection"):
        flow = functools.partial(getattr(aggregator, name), settings=portal_settings, transport=portal_transport)
        monkeypatch.setattr(aggregator, name, flow)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_summary(runner) -> None:
    result = runner.invoke(main, ["summary", *LOGIN])
    assert result.exit_code == 0, result.output
    assert "Mock Student" in result.output
    assert "82.00%" in result.output


def test_secret_is_prompted_and_not_echoed(runner) -> None:
    result = runner.invoke(
        main,
        ["summary"],
        input=f"{mock_portal.MOCK_PORTAL_SECRET}\n",
        env={"PORTAL_ID": mock_portal.MOCK_PORTAL_ID, "PORTAL_SECRET": None},
    )
    assert result.exit_code == 0, result.output
    assert "Portal password" in result.output
    assert mock_portal.MOCK_PORTAL_SECRET not in result.output


def test_bad_password(runner) -> None:
    result = runner.invoke(main, ["summary", "--portal-id", mock_portal.MOCK_PORTAL_ID, "--secret", "wrong"])
    assert result.exit_code == 1
    assert "Invalid username or password" in result.output


def test_project(runner) -> None:
    result = runner.invoke(main, ["project", *LOGIN, "--miss", "KCS501-LECTURE=5"])
    assert result.exit_code == 0, result.output
    assert "62.22%" in result.output


def test_project_miss_keys_are_case_insensitive(runner) -> None:
    result = runner.invoke(main, ["project", *LOGIN, "--miss", "kcs501-lecture=5"])
    assert result.exit_code == 0, result.output
    assert "62.22%" in result.output
    assert "Ignoring" not in result.output


def test_project_rejects_malformed_miss(runner) -> None:
    result = runner.invoke(main, ["project", *LOGIN, "--miss", "KCS501-LECTURE"])
    assert result.exit_code == 2
    assert "KEY=N" in result.output


def test_project_target_out_of_range(runner) -> None:
    result = runner.invoke(main, ["project", *LOGIN, "--target", "0"])
    assert result.exit_code == 2


def test_daywise(runner) -> None:
    result = runner.invoke(main, ["daywise", *LOGIN, "--course", "kcs501-lecture"])
    assert result.exit_code == 0, result.output
    assert "03/12/2025" in result.output
    assert "Absent" in result.output


def test_daywise_unknown_course(runner) -> None:
    result = runner.invoke(main, ["daywise", *LOGIN, "--course", "NOPE-LECTURE"])
    assert result.exit_code == 1
    assert "Unknown course" in result.output


def test_timeline(runner) -> None:
    result = runner.invoke(main, ["timeline", *LOGIN, "--course", "KCS501-LECTURE", "--days", "14"])
    assert result.exit_code == 0, result.output
    assert "3 past" in result.output
    assert "Scheduled" in result.output


def test_export(runner, tmp_path) -> None:
    output = tmp_path / "attendance.csv"
    result = runner.invoke(main, ["export", *LOGIN, "--output", str(output)])
    assert result.exit_code == 0, result.output
    lines = output.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "Course Code,Course Name,Component,Total Classes,Present Classes,Percentage"
    assert lines[1] == "KCS501,Database Management System,LECTURE,40,28,70.00"
    assert len(lines) == 4
