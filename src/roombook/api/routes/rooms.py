"""Room status endpoint (read only; room CRUD lives in the admin app)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from roombook.api.deps import get_clock, get_store
from roombook.domain.queries import list_room_statuses
from roombook.infra.store import BookingStore
from roombook.infra.time import Clock

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get("/status")
def rooms_status(
    store: BookingStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> dict:
    """Every room with its current status (available/occupied/maintenance)."""
    rows = list_room_statuses(store, now=clock.now())
    return {
        "rooms": [
            {
                "id": row.room.id,
                "name": row.room.name,
                "capacity": row.room.capacity,
                "facilities": list(row.room.facilities),
                "status": row.status.value,
            }
            for row in rows
        ]
    }
