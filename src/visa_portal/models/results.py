"""Mutation results delivered to the case aggregate."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from .enums import ApplicationStatus


@dataclass(frozen=True)
class Patch:
    """The response echoed the full updated entity; merge it in place."""
    entity: Any


@dataclass(frozen=True)
class RequiresRefetch:
    """The response was incomplete; the aggregate must be refetched."""
    reason: str = "incomplete response"


@dataclass(frozen=True)
class StatusChange:
    """Patchable change of the application's own status."""
    status: ApplicationStatus
    rejection_reason: Optional[str] = None
    decision_date: Optional[datetime] = None


MutationResult = Union[Patch, RequiresRefetch]
