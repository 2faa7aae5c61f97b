"""
Data models for sync results and the incremental sync cursor.
"""

from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SyncResult(BaseModel):
    """Counts reported by a sync pass."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int = Field(default=0, description="Bookmarks fetched from Karakeep")
    indexed: int = Field(default=0, description="Bookmarks written to the vector store")
    skipped: int = Field(default=0, description="Bookmarks without enough text to index")
    errors: int = Field(default=0, description="Bookmarks that failed to normalize")
    duration_ms: int = Field(default=0, description="Wall time of the pass in milliseconds")


class SyncState(BaseModel):
    """
    State carried between sync passes.

    ``last_synced_at`` is the incremental cursor: bookmarks modified after it
    are picked up by the next incremental sync. It stays unset until the first
    sync completes.
    """

    last_synced_at: Optional[datetime] = Field(
        default=None,
        description="Lower bound for the next incremental sync"
    )
    last_mode: Optional[Literal["full", "incremental"]] = Field(
        default=None,
        description="Mode of the last completed sync"
    )
    last_result: Optional[SyncResult] = Field(default=None, description="Result of the last sync")
    syncs_completed: int = Field(default=0, description="Number of completed sync passes")

    class Config:
        json_schema_extra = {
            "example": {
                "last_synced_at": "2025-01-12T10:30:00Z",
                "last_mode": "incremental",
                "last_result": {
                    "total": 3,
                    "indexed": 2,
                    "skipped": 1,
                    "errors": 0,
                    "durationMs": 812
                },
                "syncs_completed": 14
            }
        }
