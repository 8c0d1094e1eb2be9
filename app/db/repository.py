# backend/app/db/repository.py

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client

from app.core.errors import PersistenceError
from app.schemas.form import Form, ResponseRow

logger = logging.getLogger(__name__)


def form_from_row(row: Dict[str, Any]) -> Form:
    return Form.model_validate({
        "id": row["id"],
        "title": row.get("title") or "Untitled form",
        "description": row.get("description"),
        "questions": row.get("questions") or [],
        "settings": row.get("settings") or {},
        "status": row.get("status", "draft"),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
        "max_responses": row.get("max_responses"),
        "allowed_domains": row.get("allowed_domains"),
        "user_id": row.get("user_id"),
    })


def form_to_row(form: Form) -> Dict[str, Any]:
    return {
        "title": form.title,
        "description": form.description,
        "status": form.status.value,
        "questions": [q.model_dump(by_alias=True, exclude_none=True, mode="json") for q in form.questions],
        "settings": form.settings.model_dump(by_alias=True, exclude_none=True, mode="json"),
        "max_responses": form.max_responses,
        "allowed_domains": form.allowed_domains,
    }


class FormRepository:
    """
    Row-level access to the forms, responses, csrf token and rate limit
    tables in Supabase. Uses the service-role client, so callers are
    responsible for ownership checks.
    """

    def __init__(self, client: Client):
        self.client = client

    def get_form(self, form_id: str) -> Optional[Form]:
        try:
            response = self.client.table("forms").select("*").eq("id", form_id).single().execute()
        except APIError as e:
            logger.info(f"Form {form_id} not found: {str(e)}")
            return None
        if not response.data:
            return None
        return form_from_row(response.data)

    def list_forms(self, user_id: str) -> List[Form]:
        response = (
            self.client.table("forms")
            .select("*")
            .eq("user_id", user_id)
            .order("updated_at", desc=True)
            .execute()
        )
        return [form_from_row(row) for row in response.data or []]

    def create_form(self, form: Form, user_id: str) -> Form:
        row = {"id": form.id, "user_id": user_id, **form_to_row(form)}
        response = self.client.table("forms").insert(row).execute()
        if not response.data:
            logging.error(f"Failed to create form. Supabase response: {response}")
            raise PersistenceError("Failed to create form")
        return form_from_row(response.data[0])

    def save_form(self, form: Form) -> Form:
        try:
            response = self.client.table("forms").update(form_to_row(form)).eq("id", form.id).execute()
        except APIError as e:
            logger.error(f"Supabase API error saving form {form.id}: {str(e)}")
            raise PersistenceError(str(e))
        if not response.data:
            raise PersistenceError(f"Form {form.id} was not saved")
        return form_from_row(response.data[0])

    def delete_form(self, form_id: str) -> None:
        self.client.table("forms").delete().eq("id", form_id).execute()

    def insert_response(self, form_id: str, answers: List[Dict[str, Any]], completed: bool,
                        metadata: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.client.table("form_responses").insert({
                "form_id": form_id,
                "answers": answers,
                "completed": completed,
                "metadata": metadata,
            }).execute()
        except APIError as e:
            logger.error(f"Insert error: {str(e)}")
            raise PersistenceError("Failed to record response")
        if not response.data:
            raise PersistenceError("Failed to record response")
        return response.data[0]

    def count_responses(self, form_id: str) -> int:
        response = (
            self.client.table("form_responses")
            .select("*", count="exact", head=True)
            .eq("form_id", form_id)
            .execute()
        )
        return response.count or 0

    def list_responses(self, form_id: str) -> List[ResponseRow]:
        response = (
            self.client.table("form_responses")
            .select("*")
            .eq("form_id", form_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [ResponseRow.model_validate(row) for row in response.data or []]

    def insert_token(self, token: str, form_id: str) -> None:
        self.client.table("csrf_tokens").insert({"token": token, "form_id": form_id}).execute()

    def get_token(self, token: str, form_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = (
                self.client.table("csrf_tokens")
                .select("token, form_id, created_at, used")
                .eq("token", token)
                .eq("form_id", form_id)
                .single()
                .execute()
            )
        except APIError:
            return None
        row = response.data
        if not row:
            return None
        return {**row, "created_at": datetime.fromisoformat(row["created_at"])}

    def mark_token_used(self, token: str) -> None:
        self.client.table("csrf_tokens").update({"used": True}).eq("token", token).execute()

    def purge_tokens(self, older_than: datetime) -> None:
        self.client.table("csrf_tokens").delete().lt("created_at", older_than.isoformat()).execute()

    def count_recent_submissions(self, form_id: str, ip_hash: str, since: datetime) -> int:
        response = (
            self.client.table("submission_rate_limits")
            .select("*", count="exact", head=True)
            .eq("form_id", form_id)
            .eq("ip_hash", ip_hash)
            .gte("submitted_at", since.isoformat())
            .execute()
        )
        return response.count or 0

    def record_submission(self, form_id: str, ip_hash: str) -> None:
        self.client.table("submission_rate_limits").insert({"form_id": form_id, "ip_hash": ip_hash}).execute()

    def purge_rate_limits(self, older_than: datetime) -> None:
        self.client.table("submission_rate_limits").delete().lt("submitted_at", older_than.isoformat()).execute()
