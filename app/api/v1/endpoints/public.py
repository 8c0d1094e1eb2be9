# backend/app/api/v1/endpoints/public.py

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.api import deps
from app.db.repository import FormRepository
from app.db.session import get_repository
from app.schemas.form import Form
from app.schemas.submission import SubmitRequest, SubmitResult, TokenRequest, TokenResponse
from app.services.submission_service import SubmissionService

router = APIRouter()


def get_submission_service(repository: FormRepository = Depends(get_repository)) -> SubmissionService:
    return SubmissionService(repository)


@router.get("/forms/{form_id}", response_model=Form, response_model_exclude={"user_id"})
def get_public_form(form_id: str, repository: FormRepository = Depends(get_repository)):
    """Form definition for the respondent renderer. Closed forms are returned too."""
    form = repository.get_form(form_id)
    if form is None:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


@router.post("/issue-csrf", response_model=TokenResponse)
def issue_csrf(
    token_in: TokenRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    return TokenResponse(token=service.issue_token(token_in.form_id))


@router.post("/submit-form", response_model=SubmitResult)
def submit_form(
    submission: SubmitRequest,
    client_ip: str = Depends(deps.get_client_ip),
    service: SubmissionService = Depends(get_submission_service),
):
    logging.info(f"Submission received for form {submission.form_id}")
    return service.submit(submission, client_ip)
