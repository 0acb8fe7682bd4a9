"""
Adapter Registry
Maps directory adapter names to adapter instances. Unknown names fall back
to the generic adapter.
"""

import logging
from typing import Dict, List, Optional

from .base import SubmissionAdapter
from .generic import GenericAdapter
from .betalist import BetaListAdapter
from .producthunt import ProductHuntAdapter
from .crunchbase import CrunchbaseAdapter
from .indiehackers import IndieHackersAdapter

logger = logging.getLogger(__name__)

_ADAPTERS: Dict[str, SubmissionAdapter] = {
    "generic": GenericAdapter(),
    "betalist": BetaListAdapter(),
    "producthunt": ProductHuntAdapter(),
    "crunchbase": CrunchbaseAdapter(),
    "indiehackers": IndieHackersAdapter(),
}


def get_adapter(name: Optional[str]) -> SubmissionAdapter:
    """Look up an adapter by name (case-insensitive)."""
    if not name:
        return _ADAPTERS["generic"]

    adapter = _ADAPTERS.get(name.lower())
    if adapter is None:
        logger.info(f'Adapter "{name}" not found, using generic')
        return _ADAPTERS["generic"]

    return adapter


def list_adapters() -> List[str]:
    return list(_ADAPTERS.keys())


def register_adapter(name: str, adapter: SubmissionAdapter):
    """Add or replace an adapter at runtime."""
    _ADAPTERS[name.lower()] = adapter
