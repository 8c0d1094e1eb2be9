# backend/app/services/ai_service.py

import json
import logging
import re
from typing import Any, List

import openai
from openai import OpenAI
from langchain_core.messages import AIMessage, HumanMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_openai import ChatOpenAI
from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import AIQuotaError, AIRateLimitError, AIServiceError
from app.schemas.ai import ChatMessage, GeneratedForm, Suggestion
from app.schemas.form import QuestionType

client = OpenAI(api_key=settings.OPENAI_API_KEY, base_url=settings.OPENAI_BASE_URL)

_FENCE = re.compile(r"```(?:json)?\n?")

TYPE_LIST = " | ".join(f'"{t.value}"' for t in QuestionType)
CHOICE_TYPES = '"multiple_choice", "dropdown", "checkbox", "ranking"'

SUGGEST_PROMPT = f"""You are an expert form designer. Given a form title, suggest 6 highly relevant questions a form creator should include.

Return ONLY valid JSON, an array of objects. Each object must have:
- "title": string (the question text, concise and clear)
- "type": one of {TYPE_LIST}
- "options": array of strings (only for {CHOICE_TYPES}, otherwise omit)
- "required": boolean

Example output:
[{{"title":"What is your name?","type":"short_text","required":true}},{{"title":"How satisfied are you?","type":"rating","required":true}}]

Do NOT include any markdown, code fences, or explanation. Output raw JSON array only."""

BUILD_PROMPT = f"""You are FormqoAI, an expert form designer. The user will describe the form they want to build: its purpose, audience, or the kind of data they need to collect.

Your job is to generate a complete form definition as JSON. You MUST respond with ONLY a valid JSON object (no markdown, no explanation, no code fences).

The JSON object must have:
- "title": string, a clean, professional form title
- "description": string, a short description of the form's purpose (1 sentence)
- "questions": array of question objects

Each question object must have:
- "title": string, the question text
- "type": one of {TYPE_LIST}
- "required": boolean
- "options": array of strings (ONLY for {CHOICE_TYPES}, otherwise omit this field)
- "description": string (optional, add only when the question needs clarification)

Guidelines:
- Generate 4-10 questions depending on complexity
- Put the most important questions first
- Use appropriate question types (email for emails, rating for satisfaction, etc.)
- For choice questions, provide 3-6 realistic options
- Always include at least one required question
- If the user asks for changes to a previously generated form, output the FULL updated form JSON

Output raw JSON only. No markdown. No explanation."""

# Literal braces in the prompt must survive templating
build_prompt = ChatPromptTemplate.from_messages([
    ("system", BUILD_PROMPT.replace("{", "{{").replace("}", "}}")),
    MessagesPlaceholder("history"),
])


def strip_fences(content: str) -> str:
    return _FENCE.sub("", content).replace("```", "").strip()


def parse_suggestions(items: Any) -> List[Suggestion]:
    """Keep only well-formed suggestions with a known question type."""
    if not isinstance(items, list):
        return []
    suggestions = []
    for item in items:
        if not isinstance(item, dict) or not item.get("title") or not item.get("type"):
            continue
        try:
            suggestions.append(Suggestion.model_validate(item))
        except ValidationError:
            logging.debug(f"Dropping malformed suggestion: {item}")
    return suggestions


def _raise_for_gateway(e: openai.APIStatusError):
    if e.status_code == 429:
        raise AIRateLimitError()
    if e.status_code == 402:
        raise AIQuotaError()
    logging.error(f"AI gateway error: {e.status_code} {e}")
    raise AIServiceError("AI gateway error")


def suggest_questions(title: str) -> List[Suggestion]:
    if not title or len(title.strip()) < 3:
        return []
    try:
        response = client.chat.completions.create(
            model=settings.AI_SUGGEST_MODEL,
            messages=[
                {"role": "system", "content": SUGGEST_PROMPT},
                {"role": "user", "content": f'Form title: "{title.strip()}"'},
            ],
            temperature=0.7,
        )
    except openai.APIStatusError as e:
        _raise_for_gateway(e)
    except openai.APIError as e:
        logging.error(f"OpenAI API error: {e}")
        raise AIServiceError()

    content = response.choices[0].message.content or "[]"
    try:
        items = json.loads(strip_fences(content))
    except json.JSONDecodeError:
        logging.error(f"Failed to parse AI response: {content}")
        return []
    return parse_suggestions(items)


def build_form(messages: List[ChatMessage]) -> GeneratedForm:
    if not messages:
        raise AIServiceError("Messages array is required")

    chat_model = ChatOpenAI(
        model=settings.AI_BUILD_MODEL,
        temperature=0.6,
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
    )
    history = [
        HumanMessage(content=m.content) if m.role == "user" else AIMessage(content=m.content)
        for m in messages
    ]
    logging.info(f"Building form from {len(messages)} chat messages")
    try:
        response = chat_model.invoke(build_prompt.format_messages(history=history))
    except openai.APIStatusError as e:
        _raise_for_gateway(e)
    except openai.APIError as e:
        logging.error(f"OpenAI API error: {e}")
        raise AIServiceError()

    content = response.content if isinstance(response.content, str) else ""
    try:
        data = json.loads(strip_fences(content))
    except json.JSONDecodeError:
        logging.error(f"Failed to parse AI response: {content}")
        raise AIServiceError("AI returned invalid format. Please try again.")
    if not isinstance(data, dict) or not data.get("title"):
        raise AIServiceError("AI returned invalid format. Please try again.")

    return GeneratedForm(
        title=data["title"],
        description=data.get("description"),
        questions=parse_suggestions(data.get("questions")),
    )
