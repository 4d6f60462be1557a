"""
api/routes/parcels.py -- Parcel service with soft delete.

Routes (in registration order to avoid FastAPI path capture conflicts):
  POST   /parcelas             -- create an active parcel
  GET    /parcelas             -- active parcels, by name
  GET    /parcelas/eliminadas  -- deleted parcels, by name
  DELETE /parcelas/{parcel_id} -- mark a parcel deleted (idempotent)

Deleted parcels are never removed from the store; they move from the active
listing to the deleted one. Deleting twice returns the same record twice.
"""

from fastapi import APIRouter, Request

from api.models import ParcelCreate, ParcelDeletedResponse, ParcelResponse
from parcels.store import ParcelStore

router = APIRouter()


@router.post("/parcelas", response_model=ParcelResponse)
def create_parcel(request: Request, body: ParcelCreate) -> ParcelResponse:
    """Create a parcel. The id is generated unless the caller supplies a UUID."""
    store: ParcelStore = request.app.state.parcel_store
    parcel = store.create_parcel(body.name, body.location, str(body.id) if body.id else None)
    return ParcelResponse.from_parcel(parcel)


@router.get("/parcelas", response_model=list[ParcelResponse])
def list_active(request: Request) -> list[ParcelResponse]:
    """List parcels that have not been deleted."""
    store: ParcelStore = request.app.state.parcel_store
    return [ParcelResponse.from_parcel(p) for p in store.list_parcels(active=True)]


@router.get("/parcelas/eliminadas", response_model=list[ParcelResponse])
def list_deleted(request: Request) -> list[ParcelResponse]:
    """List parcels that have been soft-deleted."""
    store: ParcelStore = request.app.state.parcel_store
    return [ParcelResponse.from_parcel(p) for p in store.list_parcels(active=False)]


@router.delete("/parcelas/{parcel_id}", response_model=ParcelDeletedResponse)
def delete_parcel(request: Request, parcel_id: str) -> ParcelDeletedResponse:
    """Soft-delete a parcel. 404 only when the id was never created."""
    store: ParcelStore = request.app.state.parcel_store
    parcel = store.soft_delete(parcel_id)
    return ParcelDeletedResponse(deleted=ParcelResponse.from_parcel(parcel))
