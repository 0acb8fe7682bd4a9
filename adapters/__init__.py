"""
Directory Submission Adapters
Unified interface for submitting a website to third-party directories.

Adapters:
- generic (configured field mapping, auto-detect, AI fallback)
- betalist
- producthunt
- crunchbase
- indiehackers
"""

from .base import (
    SubmissionAdapter,
    SubmissionResult,
    get_field_value,
    check_success,
    extract_twitter_handle,
)
from .generic import GenericAdapter
from .betalist import BetaListAdapter
from .producthunt import ProductHuntAdapter
from .crunchbase import CrunchbaseAdapter
from .indiehackers import IndieHackersAdapter
from .registry import get_adapter, list_adapters, register_adapter

__all__ = [
    "SubmissionAdapter",
    "SubmissionResult",
    "get_field_value",
    "check_success",
    "extract_twitter_handle",
    "GenericAdapter",
    "BetaListAdapter",
    "ProductHuntAdapter",
    "CrunchbaseAdapter",
    "IndieHackersAdapter",
    "get_adapter",
    "list_adapters",
    "register_adapter",
]
