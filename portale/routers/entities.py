"""
CRUD routers for owned entities, one per registered kind.

No postponed annotations in this module: request and response models are
picked per kind inside `build_router`, and FastAPI has to see the actual
classes on each endpoint.
"""

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from portale.security.context import AuthzContext
from portale.security.decorators import scope_by_owner
from portale.security.dependencies import get_authz, get_scoped_db
from portale.services.counters import DashboardCounter, get_dashboard_counter
from portale.services.entities import EntityService
from portale.services.kinds import ENTITY_KINDS, EntityKind


def build_router(kind: EntityKind) -> APIRouter:
    router = APIRouter(prefix=kind.path, tags=[kind.folder])
    schema_in = kind.schema_in
    schema_out = kind.schema_out

    def get_service(
        db: Session = Depends(get_scoped_db),
        authz: AuthzContext = Depends(get_authz),
        counter: DashboardCounter = Depends(get_dashboard_counter),
    ) -> EntityService:
        return EntityService(kind, db, authz, counter)

    @router.get("", response_model=list[schema_out])
    @scope_by_owner()
    def list_items(service: EntityService = Depends(get_service)):
        # Owner scope is applied by db/filters.py.
        return service.list()

    @router.get("/{item_id}", response_model=schema_out)
    def get_item(item_id: int, service: EntityService = Depends(get_service)):
        return service.get(item_id)

    @router.post("", response_model=schema_out, status_code=status.HTTP_201_CREATED)
    def create_item(payload: schema_in, service: EntityService = Depends(get_service)):
        return service.create(payload)

    @router.put("/{item_id}", response_model=schema_out)
    def update_item(item_id: int, payload: schema_in, service: EntityService = Depends(get_service)):
        return service.update(item_id, payload)

    @router.delete("/{item_id}")
    def delete_item(item_id: int, service: EntityService = Depends(get_service)) -> dict[str, str]:
        service.delete(item_id)
        return {"message": f"{kind.label} deleted successfully"}

    if kind.document_slots:

        @router.post("/{item_id}/documents/{slot}", response_model=schema_out)
        def upload_document(
            item_id: int,
            slot: str,
            file: UploadFile = File(...),
            service: EntityService = Depends(get_service),
        ):
            return service.attach_document(
                item_id,
                slot,
                filename=file.filename or "",
                content_type=file.content_type,
                stream=file.file,
            )

    return router


routers = [build_router(kind) for kind in ENTITY_KINDS]
