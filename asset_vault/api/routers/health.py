from __future__ import annotations

from fastapi import APIRouter, Depends

from asset_vault.api.deps import get_database
from asset_vault.db.runtime import Database

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Database = Depends(get_database)):
    return {
        "status": "ok",
        "db": {"ok": db.health_check(), "driver": db.descriptor.driver, "database": db.descriptor.database},
    }
