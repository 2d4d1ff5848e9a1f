"""CSV export of an attendance summary."""
from __future__ import annotations

import csv
import io
import typing as t
from datetime import date

from .models import CourseAttendanceRecord

CSV_HEADERS = ["Course Code", "Course Name", "Component", "Total Classes", "Present Classes", "Percentage"]


def export_csv(records: t.Iterable[CourseAttendanceRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow([
            record.course_code,
            record.course_name,
            record.component_name,
            record.total_classes,
            record.present_classes,
            f"{record.percentage:.2f}",
        ])
    return buffer.getvalue()


def export_filename(today: date) -> str:
    return f"attendance_summary_{today.isoformat()}.csv"
