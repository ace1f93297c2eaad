"""
Proposal Domain Events

Published after the transaction that changed the proposal commits.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class ProposalCreated(DomainEvent):
    """
    Event: A proposal was created and its bookings materialized
    """
    event_type: ClassVar[str] = 'proposal.created'

    proposal_id: int
    proposal_code: str
    client_id: int
    billboard_ids: list[int] = field(default_factory=list)
    start_date: datetime
    end_date: datetime


@dataclass(kw_only=True)
class ProposalUpdated(DomainEvent):
    """
    Event: A proposal was edited

    ``added_billboards`` / ``removed_billboards`` describe the booking diff.
    """
    event_type: ClassVar[str] = 'proposal.updated'

    proposal_id: int
    proposal_code: str
    changed_fields: list[str] = field(default_factory=list)
    added_billboards: list[int] = field(default_factory=list)
    removed_billboards: list[int] = field(default_factory=list)


@dataclass(kw_only=True)
class ProposalDeleted(DomainEvent):
    """
    Event: A proposal and all of its bookings were deleted
    """
    event_type: ClassVar[str] = 'proposal.deleted'

    proposal_id: int
    proposal_code: str
    bookings_removed: int = 0
