import uuid

from pydantic import ConfigDict, EmailStr, Field

from petpromise.models.document import Document, new_id, utc_now

# Namespace for adoption request ids: one id per (requestor, pet) pair.
ADOPTION_REQUEST_NAMESPACE = uuid.UUID("6f1b7f7e-3c0e-4b8e-9d51-2f4f0c7a9a11")


def adoption_request_id(requestor_email: str, pet_id: str) -> str:
    return str(uuid.uuid5(ADOPTION_REQUEST_NAMESPACE, f"{requestor_email}|{pet_id}"))


class Pet(Document):
    """Owner-supplied attributes beyond the declared ones are kept as given."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=new_id)
    owner_email: EmailStr
    category: str
    name: str
    age: str | None = None
    location: str | None = None
    image_url: str | None = None
    short_description: str | None = None
    long_description: str | None = None
    adopted: bool = False
    is_requested: bool = False
    created_at: str = Field(default_factory=utc_now)


class AdoptionRequest(Document):
    model_config = ConfigDict(extra="allow")

    id: str
    pet_id: str
    owner_email: EmailStr
    requestor_email: EmailStr
    requestor_name: str | None = None
    phone: str | None = None
    address: str | None = None
    pet_name: str | None = None
    pet_image: str | None = None
    is_requested: bool = True
    adopted: bool = False
    created_at: str = Field(default_factory=utc_now)
