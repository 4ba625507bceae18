"""Core data models shared by the cache and lookup layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class CachedSearch:
    """Ordered search results served from the cache."""

    results: List[Dict[str, Any]] = field(default_factory=list)
    metro: Optional[str] = None
    count: int = 0
    cached_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class RegionMatch:
    """Outcome of checking a free-text location against the supported region."""

    valid: bool
    metro: Optional[str] = None
