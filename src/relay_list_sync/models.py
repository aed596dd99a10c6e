"""Pydantic models for the Cloudflare Lists objects this project touches."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

IP_LIST_KIND = "ip"


class BulkOperationStatus(str, Enum):
    """Lifecycle of an asynchronous list write."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def finished(self) -> bool:
        """Whether the operation will not change status again."""
        return self in (BulkOperationStatus.COMPLETED, BulkOperationStatus.FAILED)


class RemoteList(BaseModel):
    """A list in the account, as returned when listing or creating lists.

    Lists of every kind come back from the API, so ``kind`` is kept as text.
    """

    id: str
    name: str
    kind: str = IP_LIST_KIND
    description: str | None = None
    num_items: int = 0

    @classmethod
    def from_sdk(cls, item: Any) -> "RemoteList":
        """Build from a Cloudflare SDK list object."""
        return cls(
            id=item.id,
            name=item.name,
            kind=getattr(item, "kind", None) or IP_LIST_KIND,
            description=getattr(item, "description", None),
            num_items=getattr(item, "num_items", None) or 0,
        )


class ListItem(BaseModel):
    """One CIDR written to the managed list."""

    ip: str = Field(description="CIDR in ip/prefix form")

    def to_api_dict(self) -> dict[str, Any]:
        return {"ip": self.ip}


class BulkOperation(BaseModel):
    """Snapshot of a bulk operation."""

    id: str
    status: BulkOperationStatus
    error: str | None = None
    completed: datetime | None = None
