from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

class SyncStatus(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    FAILED = "failed"

class SyncMode(str, Enum):
    FULL = "full"                # re-embed everything regardless of fingerprint
    INCREMENTAL = "incremental"  # only products whose fingerprint changed

class SyncRecord(BaseModel):
    product_id: str
    fingerprint: Optional[str] = None   # last successfully synced content
    vector_key: str
    last_synced_at: Optional[datetime] = None
    status: SyncStatus = SyncStatus.PENDING
    last_error: Optional[str] = None

class SyncFailure(BaseModel):
    product_id: str
    reason: str                  # error kind, e.g. "EmbeddingUnavailable"
    message: Optional[str] = None

class SyncReport(BaseModel):
    """
    Outcome of one sync run. Lists are sorted by product_id so two runs over
    the same catalog compare equal whatever the batch completion order was.
    """
    mode: SyncMode = SyncMode.INCREMENTAL
    succeeded: List[str] = Field(default_factory=list)
    failed: List[SyncFailure] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def partial_failure(self) -> bool:
        """True when some items failed; the run itself still completed."""
        return bool(self.failed)
