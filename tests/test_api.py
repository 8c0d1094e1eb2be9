# backend/tests/test_api.py

from app.api.v1.endpoints import forms as forms_endpoints
from app.schemas.form import FormStatus, QuestionType
from app.services import ai_service
from app.schemas.ai import GeneratedForm, Suggestion


def test_create_and_list_forms(client):
    response = client.post("/api/v1/forms/", json={"title": "Feedback"})
    assert response.status_code == 200
    created = response.json()
    assert created["title"] == "Feedback"
    assert created["status"] == "draft"

    listed = client.get("/api/v1/forms/").json()
    assert listed == [{
        "id": created["id"],
        "title": "Feedback",
        "status": "draft",
        "questionCount": 0,
        "updatedAt": created["updatedAt"],
    }]


def test_create_from_template(client):
    response = client.post("/api/v1/forms/", json={"templateId": "tpl-nps"})
    assert response.status_code == 200
    assert response.json()["title"] == "Net Promoter Score (NPS)"
    assert len(response.json()["questions"]) == 3


def test_unknown_template_is_404(client):
    response = client.post("/api/v1/forms/", json={"templateId": "tpl-nope"})
    assert response.status_code == 404
    assert response.json()["kind"] == "NotFound"


def test_save_validates_definition(client, repository, contact_form):
    repository.add(contact_form)
    body = contact_form.model_dump(by_alias=True, mode="json", include={"title", "questions", "settings", "status"})
    body["title"] = "Renamed"
    assert client.put("/api/v1/forms/form-1", json=body).json()["title"] == "Renamed"

    body["questions"][1]["options"] = [{"id": "a", "label": "A"}, {"id": "b", "label": "B"}]
    response = client.put("/api/v1/forms/form-1", json=body)
    assert response.status_code == 422
    assert response.json()["kind"] == "Definition"
    assert any("must not carry options" in p for p in response.json()["problems"])


def test_other_users_form_is_forbidden(client, repository, contact_form):
    repository.add(contact_form, user_id="someone-else")
    assert client.get("/api/v1/forms/form-1").status_code == 403
    assert client.get("/api/v1/forms/missing").status_code == 404


def test_status_share_and_delete(client, repository, contact_form):
    repository.add(contact_form.model_copy(update={"status": FormStatus.DRAFT}))
    response = client.patch("/api/v1/forms/form-1/status", json={"status": "closed"})
    assert response.json()["status"] == "closed"

    links = client.get("/api/v1/forms/form-1/share").json()
    assert links["shareUrl"] == "https://share.formqo.com/f/form-1"
    assert links["embedUrl"] == "https://embed.formqo.com/form-1.js"
    assert 'id="formqo-form-1"' in links["embedSnippet"]

    assert client.delete("/api/v1/forms/form-1").status_code == 200
    assert "form-1" not in repository.forms


def test_public_submission_flow(client, repository, contact_form):
    repository.add(contact_form)
    form = client.get("/api/v1/public/forms/form-1").json()
    assert form["id"] == "form-1"
    assert "userId" not in form

    token = client.post("/api/v1/public/issue-csrf", json={"formId": "form-1"}).json()["token"]
    response = client.post(
        "/api/v1/public/submit-form",
        json={
            "formId": "form-1",
            "answers": [{"questionId": "q-email", "value": "a@b.co"}],
            "completed": True,
            "csrfToken": token,
            "referrer": "",
        },
        headers={"x-forwarded-for": "203.0.113.5, 10.0.0.1"},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}

    replay = client.post("/api/v1/public/submit-form", json={"formId": "form-1", "csrfToken": token})
    assert replay.status_code == 403
    assert replay.json()["kind"] == "TokenInvalid"

    rows = client.get("/api/v1/forms/form-1/responses").json()
    assert len(rows) == 1
    assert rows[0]["answers"] == [{"questionId": "q-email", "value": "a@b.co"}]

    export = client.get("/api/v1/forms/form-1/responses/export")
    assert export.headers["content-type"].startswith("text/csv")
    assert 'filename="Contact_responses.csv"' in export.headers["content-disposition"]
    assert export.text.splitlines()[1].endswith('"a@b.co",""')


def test_public_errors(client, repository, contact_form):
    assert client.get("/api/v1/public/forms/missing").status_code == 404
    assert client.post("/api/v1/public/issue-csrf", json={}).status_code == 400
    assert client.post("/api/v1/public/submit-form", json={"answers": []}).status_code == 400

    repository.add(contact_form.model_copy(update={"status": FormStatus.CLOSED}))
    closed = client.get("/api/v1/public/forms/form-1").json()
    assert closed["status"] == "closed"


def test_templates_catalog(client):
    templates = client.get("/api/v1/templates/").json()
    assert len(templates) == 10
    assert templates[0]["estimatedTime"] == "1 min"
    assert client.get("/api/v1/templates/tpl-rsvp").json()["title"] == "Event RSVP"
    assert len(client.get("/api/v1/templates/", params={"category": "Events"}).json()) == 2


def test_ai_endpoints(client, monkeypatch):
    monkeypatch.setattr(ai_service, "suggest_questions",
                        lambda title: [Suggestion(title="Your email", type=QuestionType.EMAIL)])
    monkeypatch.setattr(ai_service, "build_form",
                        lambda messages: GeneratedForm(title="Quiz", questions=[]))

    suggestions = client.post("/api/v1/ai/suggest-questions", json={"title": "Newsletter"}).json()
    assert suggestions["suggestions"][0]["type"] == "email"

    built = client.post("/api/v1/ai/build-form", json={"messages": [{"role": "user", "content": "A quiz"}]}).json()
    assert built["form"]["title"] == "Quiz"


def test_welcome_image_upload(client, repository, contact_form, monkeypatch):
    repository.add(contact_form)

    async def fake_save(supabase, file, form_id):
        return f"https://cdn.test/welcome/{form_id}/{file.filename}"

    monkeypatch.setattr(forms_endpoints, "save_welcome_image", fake_save)
    monkeypatch.setattr(forms_endpoints, "get_supabase", lambda: None)
    response = client.post(
        "/api/v1/forms/form-1/welcome-image",
        files={"file": ("hero.png", b"\x89PNG", "image/png")},
    )
    assert response.status_code == 200
    welcome = response.json()["settings"]["welcomeScreen"]
    assert welcome["imageUrl"] == "https://cdn.test/welcome/form-1/hero.png"
    assert welcome["enabled"] is True


def test_export_with_non_latin_title(client, repository, contact_form):
    repository.add(contact_form.model_copy(update={"title": "Опрос клиентов"}))
    export = client.get("/api/v1/forms/form-1/responses/export")
    assert export.status_code == 200
    disposition = export.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="')
    assert "filename*=UTF-8''%D0%9E" in disposition
