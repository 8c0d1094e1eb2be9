# backend/app/schemas/user.py

from typing import Optional

from pydantic import BaseModel


class User(BaseModel):
    id: str
    email: Optional[str] = None
