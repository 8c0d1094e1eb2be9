# backend/tests/test_templates_export.py

from datetime import datetime, timezone

import pytest

from app.core.errors import NotFoundError
from app.schemas.form import Answer, Form, QuestionOption, QuestionType, ResponseRow
from app.services.form_model import validate_form
from app.services.response_export import content_disposition, export_filename, responses_to_csv
from app.services.templates import FORM_TEMPLATES, TEMPLATE_CATEGORIES, form_from_template, list_templates


@pytest.mark.parametrize("template", FORM_TEMPLATES, ids=lambda t: t.id)
def test_templates_produce_valid_forms(template):
    form = form_from_template(template.id)
    validate_form(form)
    assert form.title == template.title
    assert form.status.value == "draft"
    assert template.category in TEMPLATE_CATEGORIES


def test_template_ids_are_regenerated():
    first = form_from_template("tpl-contact")
    second = form_from_template("tpl-contact")
    assert {q.id for q in first.questions}.isdisjoint({q.id for q in second.questions})
    dropdown = first.questions[2]
    assert [o.label for o in dropdown.options][0] == "General enquiry"
    assert dropdown.options[0].id != "o1"


def test_template_lookup():
    assert [t.id for t in list_templates("HR")] == ["tpl-job", "tpl-employee-satisfaction"]
    with pytest.raises(NotFoundError):
        form_from_template("tpl-missing")


def test_csv_export(make_question):
    choice = make_question("q-plan", QuestionType.MULTIPLE_CHOICE, "Plan",
                           options=[QuestionOption(id="o1", label="Free"), QuestionOption(id="o2", label="Pro")])
    form = Form(id="f", title="Plan survey", questions=[
        make_question("q-name", QuestionType.SHORT_TEXT, 'Name "full"'),
        choice,
        make_question("q-tags", QuestionType.CHECKBOX, "Tags"),
    ])
    rows = [ResponseRow(
        id="r1",
        form_id="f",
        answers=[
            Answer(question_id="q-name", value='Jane "JJ" Doe'),
            Answer(question_id="q-plan", value="o2"),
            Answer(question_id="q-tags", value=["a", "b"]),
        ],
        completed=True,
        respondent_email="jane@example.com",
        created_at=datetime(2025, 3, 5, 14, 3, tzinfo=timezone.utc),
    )]
    lines = responses_to_csv(form, rows).split("\n")
    assert lines[0] == '"Submitted at","Respondent email","Name ""full""","Plan","Tags"'
    assert lines[1] == '"5 Mar 2025, 14:03","jane@example.com","Jane ""JJ"" Doe","Pro","a, b"'
    assert export_filename(form) == "Plan_survey_responses.csv"


def test_csv_blank_for_unanswered(contact_form):
    rows = [ResponseRow(id="r1", form_id="form-1", answers=[], completed=False,
                        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))]
    lines = responses_to_csv(contact_form, rows).split("\n")
    assert lines[1] == '"1 Jan 2025, 00:00","","",""'


def test_download_header_survives_any_title():
    form = Form(id="f", title='Опрос "клиентов" 2025')
    name = export_filename(form)
    assert name == "Опрос_клиентов_2025_responses.csv"

    header = content_disposition(name)
    header.encode("latin-1")
    assert 'filename="form_' in header
    assert header.endswith("filename*=UTF-8''%D0%9E%D0%BF%D1%80%D0%BE%D1%81_%D0%BA%D0%BB%D0%B8%D0%B5%D0%BD%D1%82%D0%BE%D0%B2_2025_responses.csv")
    assert content_disposition("Plan_survey_responses.csv").startswith('attachment; filename="Plan_survey_responses.csv"')
