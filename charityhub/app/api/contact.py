"""Contact form and newsletter signup API."""

import html
import json
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field, field_validator

from charityhub.app.api.dependencies import get_kv_store
from charityhub.app.core.logging import get_logger
from charityhub.app.core.storage import KeyValueStore
from charityhub.app.core.utils import now_ms, to_iso8601
from charityhub.app.exceptions import SubscriptionConflictError
from charityhub.app.middleware.rate_limit import RateLimitGuard

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["contact"])

NAME_PATTERN = r"^[a-zA-Z0-9\s.'-]+$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PHONE_PATTERN = r"^\+?[1-9]\d{0,15}$"
NEWSLETTER_KEY_PREFIX = "newsletter"


def _normalize_email(v: str) -> str:
    return v.strip().lower()


class ContactForm(BaseModel):
    """Contact form submission."""

    name: str = Field(..., min_length=1, max_length=100, pattern=NAME_PATTERN)
    email: str = Field(..., min_length=5, max_length=254, pattern=EMAIL_PATTERN)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=10, max_length=2000)

    @field_validator("name", "subject", "message", "phone", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v) if isinstance(v, str) else v


class ContactResponse(BaseModel):
    success: bool = True
    message: str
    submissionId: str
    timestamp: str


class NewsletterSignup(BaseModel):
    """Newsletter subscription request."""

    name: str = Field(..., min_length=1, max_length=100, pattern=NAME_PATTERN)
    email: str = Field(..., min_length=5, max_length=254, pattern=EMAIL_PATTERN)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v) if isinstance(v, str) else v


class NewsletterResponse(BaseModel):
    success: bool = True
    message: str
    email: str
    subscribedAt: str


def new_submission_id(ms: int) -> str:
    return f"contact_{ms}_{uuid.uuid4().hex[:9]}"


def _load_subscriber(key: str, raw: Optional[str]) -> Optional[dict[str, Any]]:
    """Stored subscriber record, or None when absent or unreadable."""
    if not raw:
        return None
    try:
        record = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring unreadable newsletter record under '{key}': {e}")
        return None
    if not isinstance(record, dict):
        logger.warning(f"Ignoring newsletter record under '{key}': not a JSON object")
        return None
    return record


def sanitize_contact(form: ContactForm) -> dict[str, Optional[str]]:
    """HTML-escape every free-text field of a submission."""
    return {
        "name": html.escape(form.name),
        "email": html.escape(form.email),
        "phone": html.escape(form.phone) if form.phone else None,
        "subject": html.escape(form.subject),
        "message": html.escape(form.message),
    }


@router.post(
    "/contact",
    response_model=ContactResponse,
    dependencies=[Depends(RateLimitGuard("CONTACT"))],
)
async def submit_contact(form: ContactForm) -> ContactResponse:
    """Accept a contact form submission."""
    sanitized = sanitize_contact(form)
    ms = now_ms()
    submission_id = new_submission_id(ms)
    logger.info(f"Contact form submission {submission_id} from {sanitized['email']}")
    return ContactResponse(
        message="Thank you for your message. We will get back to you soon!",
        submissionId=submission_id,
        timestamp=to_iso8601(ms),
    )


@router.post(
    "/newsletter",
    status_code=status.HTTP_201_CREATED,
    response_model=NewsletterResponse,
    dependencies=[Depends(RateLimitGuard("NEWSLETTER"))],
)
async def subscribe_newsletter(
    signup: NewsletterSignup,
    response: Response,
    store: KeyValueStore = Depends(get_kv_store),
) -> NewsletterResponse:
    """Record a newsletter subscriber.

    Raises:
        SubscriptionConflictError: 409 when the email is already active
    """
    key = f"{NEWSLETTER_KEY_PREFIX}:{signup.email}"
    existing = _load_subscriber(key, await store.get(key))
    reactivated = False
    if existing is not None:
        if existing.get("isActive", False):
            raise SubscriptionConflictError(signup.email)
        reactivated = True

    subscribed_at = to_iso8601(now_ms())
    record = {
        "name": html.escape(signup.name),
        "email": signup.email,
        "subscribedAt": subscribed_at,
        "isActive": True,
        "source": "website",
    }
    await store.set(key, json.dumps(record))

    if reactivated:
        response.status_code = status.HTTP_200_OK
        message = "Newsletter subscription reactivated successfully!"
    else:
        message = "Successfully subscribed to Hope Dispatch newsletter!"
    logger.info(f"Newsletter subscription recorded for {signup.email}")
    return NewsletterResponse(message=message, email=signup.email, subscribedAt=subscribed_at)
