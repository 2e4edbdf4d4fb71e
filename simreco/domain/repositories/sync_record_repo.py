# simreco/domain/repositories/sync_record_repo.py
from __future__ import annotations
from typing import Dict, Iterable, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from simreco.domain.models.sync import SyncRecord, SyncStatus

"""
Note:
    - Storage adapters for SyncRecord documents. No business logic here.
    - Only SyncStateTracker writes through these adapters.
"""

class SyncRecordRepo:
    """
    SyncRecord store backed by the 'sync_records' collection.
    One document per product, keyed by product_id.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "sync_records"):
        self.col = db[collection_name]

    async def get(self, product_id: str) -> Optional[SyncRecord]:
        doc = await self.col.find_one({"product_id": product_id}, {"_id": 0})
        return SyncRecord.model_validate(doc) if doc else None

    async def get_many(self, product_ids: Iterable[str]) -> Dict[str, SyncRecord]:
        ids = list(product_ids)
        if not ids:
            return {}
        cursor = self.col.find({"product_id": {"$in": ids}}, {"_id": 0})
        return {d["product_id"]: SyncRecord.model_validate(d) async for d in cursor}

    async def save(self, record: SyncRecord) -> None:
        await self.col.replace_one(
            {"product_id": record.product_id},
            record.model_dump(mode="json"),
            upsert=True,
        )

    async def set_status(self, product_ids: Iterable[str], status: SyncStatus, *, error: Optional[str] = None) -> int:
        ids = list(product_ids)
        if not ids:
            return 0
        res = await self.col.update_many(
            {"product_id": {"$in": ids}},
            {"$set": {"status": SyncStatus(status).value, "last_error": error}},
        )
        return res.matched_count or 0

    async def delete(self, product_id: str) -> None:
        await self.col.delete_one({"product_id": product_id})

    async def all_ids(self) -> List[str]:
        cursor = self.col.find({}, {"_id": 0, "product_id": 1})
        return [d["product_id"] async for d in cursor]


class InMemorySyncRecordRepo:
    """Same contract as SyncRecordRepo, held in a dict (tests, local runs)."""

    def __init__(self):
        self.records: Dict[str, SyncRecord] = {}

    async def get(self, product_id: str) -> Optional[SyncRecord]:
        return self.records.get(product_id)

    async def get_many(self, product_ids: Iterable[str]) -> Dict[str, SyncRecord]:
        return {pid: self.records[pid] for pid in product_ids if pid in self.records}

    async def save(self, record: SyncRecord) -> None:
        self.records[record.product_id] = record

    async def set_status(self, product_ids: Iterable[str], status: SyncStatus, *, error: Optional[str] = None) -> int:
        n = 0
        for pid in product_ids:
            rec = self.records.get(pid)
            if rec is None:
                continue
            self.records[pid] = rec.model_copy(update={"status": SyncStatus(status), "last_error": error})
            n += 1
        return n

    async def delete(self, product_id: str) -> None:
        self.records.pop(product_id, None)

    async def all_ids(self) -> List[str]:
        return list(self.records)
