# api/v1/schemas/reco.py
from pydantic import BaseModel, Field
from typing import List, Optional

class RecoItemOut(BaseModel):
    product_id: str
    score: float

class RecoResultOut(BaseModel):
    source_product_id: str
    items: List[RecoItemOut]
    count: int


class SyncFailureOut(BaseModel):
    product_id: str
    reason: str
    message: Optional[str] = None

class SyncReportOut(BaseModel):
    mode: str
    succeeded: List[str] = Field(default_factory=list)
    failed: List[SyncFailureOut] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    elapsed_ms: float
    partial_failure: bool = False
