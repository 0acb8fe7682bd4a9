"""
Data models for directory submissions.

Websites and directories are read-only inputs while a batch runs; a
Submission carries the mutable processing state owned by the queue worker.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_REVIEW = "needs_review"
    FAILED = "failed"
    EXPIRED = "expired"


class SubmissionType(str, Enum):
    API = "api"
    FORM = "form"
    EMAIL = "email"
    MANUAL = "manual"


def _pick(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only keys that are fields of the dataclass."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (data or {}).items() if k in names}


@dataclass
class Website:
    """Business listing being submitted."""
    name: str
    url: str
    id: Optional[str] = None
    tagline: Optional[str] = None
    description_short: Optional[str] = None
    description_medium: Optional[str] = None
    description_long: Optional[str] = None
    industry: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    pricing_model: Optional[str] = None
    screenshot_url: Optional[str] = None
    twitter_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    contact_email: Optional[str] = None
    founder_name: Optional[str] = None
    founder_email: Optional[str] = None

    @property
    def email(self) -> Optional[str]:
        return self.contact_email or self.founder_email

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Website":
        return cls(**_pick(cls, data))


@dataclass
class Directory:
    """Catalog record for a third-party directory."""
    name: str
    url: str
    id: Optional[str] = None
    submission_url: Optional[str] = None
    submission_type: SubmissionType = SubmissionType.FORM
    adapter_name: Optional[str] = None
    adapter_config: Dict[str, Any] = field(default_factory=dict)
    is_active: bool = True

    @property
    def form_fields(self) -> Dict[str, str]:
        return dict((self.adapter_config or {}).get("form_fields") or {})

    @property
    def has_adapter_config(self) -> bool:
        return bool(self.form_fields)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Directory":
        picked = _pick(cls, data)
        if picked.get("submission_type"):
            picked["submission_type"] = SubmissionType(picked["submission_type"])
        else:
            picked.pop("submission_type", None)
        picked["adapter_config"] = picked.get("adapter_config") or {}
        picked["is_active"] = bool(picked.get("is_active", True))
        return cls(**picked)


@dataclass
class SubmissionContent:
    """Text bundle handed to an adapter."""
    tagline: Optional[str] = None
    short_description: Optional[str] = None
    long_description: Optional[str] = None

    @classmethod
    def from_website(cls, website: Website) -> "SubmissionContent":
        return cls(
            tagline=website.tagline,
            short_description=website.description_short or website.tagline,
            long_description=(
                website.description_medium
                or website.description_long
                or website.description_short
            ),
        )


@dataclass
class Submission:
    """One (website, directory) submission job and its processing state."""
    id: str
    website: Optional[Website]
    directory: Optional[Directory]
    status: SubmissionStatus = SubmissionStatus.PENDING
    retry_count: int = 0
    infrastructure_retries: int = 0
    next_retry_at: Optional[datetime] = None
    error_message: Optional[str] = None
    error_category: Optional[str] = None
    listing_url: Optional[str] = None
    submitted_at: Optional[datetime] = None
    title_used: Optional[str] = None
    description_used: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def directory_name(self) -> str:
        return self.directory.name if self.directory else "unknown"
