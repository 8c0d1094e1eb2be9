# backend/app/services/response_export.py

import csv
import io
import re
import unicodedata
from datetime import datetime
from typing import Any, Dict, List
from urllib.parse import quote

from app.schemas.form import Form, Question, ResponseRow

EMPTY_ANSWER = "—"


def format_date(value: datetime) -> str:
    return f"{value.day} {value:%b %Y, %H:%M}"


def answer_display(question: Question, value: Any) -> str:
    """Render a stored answer as one cell, showing option labels instead of ids."""
    if value is None or value == "" or value == []:
        return EMPTY_ANSWER
    labels = {o.id: o.label for o in question.options or []}
    if isinstance(value, list):
        return ", ".join(labels.get(str(v), str(v)) for v in value)
    return labels.get(str(value), str(value))


def export_filename(form: Form) -> str:
    title = re.sub(r'[\x00-\x1f\x7f"\\/]', "", form.title)
    return re.sub(r"\s+", "_", title) + "_responses.csv"


def content_disposition(filename: str) -> str:
    """
    Attachment header for a download. Header values travel as latin-1, so the
    plain `filename` gets an ASCII rendering and `filename*` carries the
    UTF-8 original.
    """
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    ascii_name = re.sub(r"[^A-Za-z0-9._-]", "_", ascii_name)
    if ascii_name.startswith("_"):
        ascii_name = "form" + ascii_name
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


def responses_to_csv(form: Form, rows: List[ResponseRow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(["Submitted at", "Respondent email"] + [q.title for q in form.questions])
    for row in rows:
        answers: Dict[str, Any] = {a.question_id: a.value for a in row.answers}
        cells = [format_date(row.created_at), row.respondent_email or ""]
        for question in form.questions:
            cells.append(answer_display(question, answers[question.id]) if question.id in answers else "")
        writer.writerow(cells)
    return buffer.getvalue().rstrip("\n")
