from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from inventario.dependencies import get_current_principal
from inventario.models.database import get_db
from inventario.models.material import Material
from inventario.schemas.material import (
    MaterialCreate,
    MaterialReconciliation,
    MaterialResponse,
    MaterialUpdate,
    PaginatedMaterialResponse,
)
from inventario.services import catalog
from inventario.services.authorization import Principal
from inventario.utils.dates import as_utc

router = APIRouter(prefix="/materiales", tags=["Materiales"])


def to_response(material: Material) -> MaterialResponse:
    return MaterialResponse(
        **material.model_dump(exclude={"version", "created_at"}),
        created_at=as_utc(material.created_at),
        bajo_stock=material.stock <= material.stock_minimo,
    )


@router.get("/", response_model=PaginatedMaterialResponse)
def get_materials(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    limit: int = Query(10, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None),
    bajo_stock: Optional[bool] = Query(None),
):
    """Lista los materiales. Filtra por nombre/código y por stock bajo."""
    materials, total = catalog.list_materials(
        db, principal, search=search, bajo_stock=bajo_stock, limit=limit, offset=offset
    )
    return {
        "data": [to_response(material) for material in materials],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.get("/{id}", response_model=MaterialResponse)
def get_material(
    id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Obtiene un material por su ID."""
    return to_response(catalog.get_material(db, principal, id))


@router.get("/{id}/conciliacion", response_model=MaterialReconciliation)
def reconcile_material(
    id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Compara el stock con stock_inicial + entradas - salidas."""
    return catalog.reconcile_material(db, principal, id)


@router.post("/", response_model=MaterialResponse, status_code=status.HTTP_201_CREATED)
def create_material(
    material_data: MaterialCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Da de alta un material (admin o almacenero)."""
    material = catalog.create_material(db, principal, **material_data.model_dump())
    return to_response(material)


@router.patch("/{id}", response_model=MaterialResponse)
def update_material(
    id: int,
    material_update: MaterialUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Edita los metadatos de un material (admin o almacenero).
    - El stock no se puede editar: se rechaza con 400 si viene en el cuerpo.
    """
    fields = material_update.model_dump(exclude_unset=True)
    fields.update(material_update.model_extra or {})
    material = catalog.update_material(db, principal, id, fields)
    return to_response(material)


@router.delete("/{id}", response_model=MaterialResponse)
def delete_material(
    id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Elimina un material sin movimientos (solo admin)."""
    return to_response(catalog.delete_material(db, principal, id))
