import re
from datetime import datetime, timezone
from io import BytesIO
from typing import Iterable

import pandas as pd

from .exam_service import to_utc

EXPORT_COLUMNS = [
    "student_code",
    "full_name",
    "class_name",
    "gender",
    "exam",
    "score",
    "total_questions",
    "time_spent",
    "completed_at(utc)",
]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def format_time_spent(minutes) -> str:
    # minutes (float) -> "MM:SS"
    total_seconds = round(float(minutes or 0) * 60)
    return f"{total_seconds // 60:02d}:{total_seconds % 60:02d}"


def export_results(results: Iterable, exam_title: str) -> bytes:
    rows = []
    for r in results:
        completed = to_utc(r.completed_at)
        rows.append({
            "student_code": r.student_code or "",
            "full_name": r.full_name or "",
            "class_name": r.class_name or "",
            "gender": r.gender or "",
            "exam": exam_title,
            "score": f"{float(r.score):.2f}" if r.score is not None else "",
            "total_questions": r.total_questions or 0,
            "time_spent": format_time_spent(r.time_spent_minutes),
            "completed_at(utc)": completed.strftime("%Y-%m-%d %H:%M:%S") if completed else "",
        })

    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Results")
        sheet = writer.sheets["Results"]
        for idx, column in enumerate(EXPORT_COLUMNS):
            width = max([len(column)] + [len(str(row[column])) for row in rows]) + 2
            sheet.column_dimensions[chr(ord("A") + idx)].width = width
    return buffer.getvalue()


def export_filename(exam_title: str) -> str:
    date_str = datetime.now(timezone.utc).strftime("%Y%m%d")
    clean = re.sub(r"[^a-zA-Z0-9]", "_", exam_title or "Results")
    return f"Results_{clean}_{date_str}.xlsx"
