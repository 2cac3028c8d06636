# mobilewash/schemas.py
import re
from typing import List, Optional, Any, Dict
from pydantic import BaseModel, Field, field_validator, ConfigDict

MAX_PROMPT_LENGTH = 10000

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")


class ChatMessage(BaseModel):
    role: str
    content: str

    @field_validator("content", mode="before")
    @classmethod
    def content_to_str(cls, v):
        return v if v is None else str(v)


class ChatRequest(BaseModel):
    """Body accepted by every chat proxy. Unknown keys are kept for forwarding."""
    model_config = ConfigDict(extra="allow")

    prompt: Optional[str] = None
    role: Optional[str] = None
    model: Optional[str] = None
    messages: Optional[List[Dict[str, Any]]] = None
    image: Optional[str] = None

    def forward_body(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ImageRequest(BaseModel):
    image: Optional[str] = None
    prompt: Optional[str] = None


class AutoModeInfo(BaseModel):
    selectedCategory: str
    selectedModel: str
    selectedEndpoint: str
    reason: str


class QuoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service: Optional[str] = None
    vehicle_type: str = Field("car", alias="vehicleType")
    add_ons: List[str] = Field(default_factory=list, alias="addOns")
    location: Optional[str] = None


# ---------------------------------------------------------------------------
# Customers (CRUD template instantiation)
# ---------------------------------------------------------------------------
def _check_email(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not EMAIL_RE.match(v):
        raise ValueError("email must be a valid email address")
    return v


def _check_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not PHONE_RE.match(v) or len(re.sub(r"\D", "", v)) < 10:
        raise ValueError("phone must be a valid phone number")
    return v


class CustomerCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255)
    phone: str = Field(..., max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("email")
    @classmethod
    def email_valid(cls, v):
        return _check_email(v)

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v):
        return _check_phone(v)


class CustomerUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("email")
    @classmethod
    def email_valid(cls, v):
        return _check_email(v)

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v):
        return _check_phone(v)
