# backend/app/api/v1/endpoints/ai.py

import logging

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from app.api import deps
from app.schemas.ai import BuildFormRequest, BuildFormResponse, SuggestRequest, SuggestResponse
from app.schemas.user import User
from app.services import ai_service

router = APIRouter()


@router.post("/suggest-questions", response_model=SuggestResponse)
async def suggest_questions(
    request: SuggestRequest,
    current_user: User = Depends(deps.get_current_user),
):
    logging.info(f"Question suggestions requested by {current_user.id}")
    suggestions = await run_in_threadpool(ai_service.suggest_questions, request.title)
    return SuggestResponse(suggestions=suggestions)


@router.post("/build-form", response_model=BuildFormResponse)
async def build_form(
    request: BuildFormRequest,
    current_user: User = Depends(deps.get_current_user),
):
    logging.info(f"Form generation requested by {current_user.id}")
    generated = await run_in_threadpool(ai_service.build_form, request.messages)
    return BuildFormResponse(form=generated)
