# backend/app/services/link_generator.py

import secrets

from app.core.config import settings
from app.schemas.form import ShareLinks

def generate_csrf_token() -> str:
    # 32 random bytes, hex encoded
    return secrets.token_hex(32)

def share_url(form_id: str) -> str:
    return f"{settings.SHARE_URL}/f/{form_id}"

def embed_url(form_id: str) -> str:
    return f"{settings.EMBED_URL}/{form_id}.js"

def embed_snippet(form_id: str) -> str:
    return f'<div id="formqo-{form_id}"></div>\n<script src="{embed_url(form_id)}" async></script>'

def share_links(form_id: str) -> ShareLinks:
    return ShareLinks(share_url=share_url(form_id), embed_url=embed_url(form_id), embed_snippet=embed_snippet(form_id))
