# backend/app/api/v1/endpoints/forms.py

import logging
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from app.api import deps
from app.db.repository import FormRepository
from app.db.session import get_repository, get_supabase
from app.schemas.form import (
    Form,
    FormCreate,
    FormSave,
    FormStatusUpdate,
    FormSummary,
    ResponseRow,
    ShareLinks,
    utcnow,
)
from app.schemas.user import User
from app.services.builder import FormBuilder
from app.services.form_model import new_form, validate_form
from app.services.link_generator import share_links
from app.services.response_export import content_disposition, export_filename, responses_to_csv
from app.services.templates import form_from_template
from app.utils.file_utils import save_welcome_image

router = APIRouter()


@router.get("/", response_model=List[FormSummary])
def list_forms(
    current_user: User = Depends(deps.get_current_user),
    repository: FormRepository = Depends(get_repository),
):
    forms = repository.list_forms(current_user.id)
    return [
        FormSummary(id=f.id, title=f.title, status=f.status, question_count=len(f.questions), updated_at=f.updated_at)
        for f in forms
    ]


@router.post("/", response_model=Form)
def create_form(
    form_in: FormCreate,
    current_user: User = Depends(deps.get_current_user),
    repository: FormRepository = Depends(get_repository),
):
    if form_in.template_id:
        form = form_from_template(form_in.template_id)
    else:
        form = new_form(title=form_in.title or "Untitled form")
    logging.info(f"Creating form {form.id} for user {current_user.id}")
    return repository.create_form(form, current_user.id)


@router.get("/{form_id}", response_model=Form)
def get_form(form: Form = Depends(deps.get_owned_form)):
    return form


@router.put("/{form_id}", response_model=Form)
def save_form(
    form_in: FormSave,
    form: Form = Depends(deps.get_owned_form),
    repository: FormRepository = Depends(get_repository),
):
    updated = Form.model_validate({**form.model_dump(), **form_in.model_dump(), "updated_at": utcnow()})
    validate_form(updated)
    logging.info(f"Saving form {form.id} with {len(updated.questions)} questions")
    return repository.save_form(updated)


@router.patch("/{form_id}/status", response_model=Form)
def update_status(
    status_in: FormStatusUpdate,
    form: Form = Depends(deps.get_owned_form),
    repository: FormRepository = Depends(get_repository),
):
    builder = FormBuilder(form)
    builder.set_status(status_in.status)
    logging.info(f"Form {form.id} status set to {status_in.status.value}")
    return repository.save_form(builder.form)


@router.delete("/{form_id}", response_model=None)
def delete_form(
    form: Form = Depends(deps.get_owned_form),
    repository: FormRepository = Depends(get_repository),
):
    repository.delete_form(form.id)
    logging.info(f"Form {form.id} deleted successfully")
    return {"detail": "Form deleted successfully"}


@router.get("/{form_id}/responses", response_model=List[ResponseRow])
def list_responses(
    form: Form = Depends(deps.get_owned_form),
    repository: FormRepository = Depends(get_repository),
):
    return repository.list_responses(form.id)


@router.get("/{form_id}/responses/export")
def export_responses(
    form: Form = Depends(deps.get_owned_form),
    repository: FormRepository = Depends(get_repository),
):
    rows = repository.list_responses(form.id)
    logging.info(f"Exporting {len(rows)} responses for form {form.id}")
    return Response(
        content=responses_to_csv(form, rows),
        media_type="text/csv",
        headers={"Content-Disposition": content_disposition(export_filename(form))},
    )


@router.get("/{form_id}/share", response_model=ShareLinks)
def get_share_links(form: Form = Depends(deps.get_owned_form)):
    return share_links(form.id)


@router.post("/{form_id}/welcome-image", response_model=Form)
async def upload_welcome_image(
    file: UploadFile = File(...),
    form: Form = Depends(deps.get_owned_form),
    repository: FormRepository = Depends(get_repository),
):
    public_url = await save_welcome_image(get_supabase(), file, form.id)
    builder = FormBuilder(form)
    builder.update_welcome_screen(image_url=public_url)
    return await run_in_threadpool(repository.save_form, builder.form)
