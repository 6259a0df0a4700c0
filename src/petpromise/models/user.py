from typing import Literal

from pydantic import EmailStr, Field

from petpromise.models.document import Document, utc_now

Role = Literal["User", "Admin"]


class User(Document):
    email: EmailStr
    name: str | None = None
    photo_url: str | None = None
    role: Role = "User"
    created_at: str = Field(default_factory=utc_now)
