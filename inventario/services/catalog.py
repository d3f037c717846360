"""
Catálogo de materiales: alta, edición de metadatos, baja y consultas.

El stock NO se edita aquí: solo el ledger de movimientos lo modifica. La
edición de metadatos escribe únicamente las columnas cambiadas, así que nunca
pisa un stock actualizado en paralelo.
"""

from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, func, select

from inventario.exceptions import (
    DuplicateCode,
    InvalidInput,
    MaterialHasMovements,
    MaterialNotFound,
    PersistenceUnavailable,
)
from inventario.models.enums import TipoMovimiento
from inventario.models.material import Material
from inventario.models.movement import Movement
from inventario.services.authorization import (
    Entidad,
    Operacion,
    Principal,
    authorize,
)
from inventario.utils.logger import get_logger
from inventario.utils.validation import (
    normalize_code,
    optional_text,
    parse_decimal,
    require_text,
)

logger = get_logger("catalog")

# Campos de metadatos que admite update_material()
CAMPOS_EDITABLES = {"nombre", "descripcion", "unidad", "stock_minimo", "precio"}


def _load(db: Session, material_id: int) -> Material:
    try:
        material = db.get(Material, material_id)
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e
    if not material:
        raise MaterialNotFound(id=material_id)
    return material


def _code_exists(db: Session, codigo: str) -> bool:
    try:
        return db.exec(select(Material.id).where(Material.codigo == codigo)).first() is not None
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e


def create_material(
    db: Session,
    principal: Principal,
    codigo: str,
    nombre: str,
    unidad: str,
    stock: Any = Decimal("0"),
    stock_minimo: Any = Decimal("0"),
    precio: Any = Decimal("0"),
    descripcion: Optional[str] = None,
) -> Material:
    """
    Da de alta un material con su stock inicial.

    Raises:
        Forbidden: si el usuario no es admin ni almacenero
        InvalidInput: campos vacíos o valores numéricos negativos
        DuplicateCode: si el código normalizado ya existe
    """
    authorize(principal, Operacion.CREAR, Entidad.MATERIAL)

    codigo = normalize_code(codigo)
    if not codigo:
        raise InvalidInput("El campo 'codigo' es obligatorio", campo="codigo")
    if len(codigo) > 50:
        raise InvalidInput("El código admite como máximo 50 caracteres", campo="codigo")
    nombre = require_text(nombre, "nombre", 150)
    unidad = require_text(unidad, "unidad", 30)
    descripcion = optional_text(descripcion, "descripcion", 500)
    stock = parse_decimal(stock, "stock")
    stock_minimo = parse_decimal(stock_minimo, "stock_minimo")
    precio = parse_decimal(precio, "precio", decimal_places=2)

    if _code_exists(db, codigo):
        raise DuplicateCode(codigo=codigo)

    material = Material(
        codigo=codigo,
        nombre=nombre,
        descripcion=descripcion,
        unidad=unidad,
        stock=stock,
        stock_inicial=stock,
        stock_minimo=stock_minimo,
        precio=precio,
    )
    try:
        db.add(material)
        db.commit()
    except IntegrityError as e:
        # Otro alta con el mismo código ganó la carrera
        db.rollback()
        raise DuplicateCode(codigo=codigo) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceUnavailable() from e

    db.refresh(material)
    logger.info(
        "catalog.create",
        material_id=material.id,
        codigo=codigo,
        stock=str(stock),
        actor_id=principal.id,
    )
    return material


def update_material(
    db: Session, principal: Principal, material_id: int, fields: dict
) -> Material:
    """
    Edita metadatos (nombre, descripcion, unidad, stock_minimo, precio).

    Cualquier otro campo, en particular `stock`, se rechaza con InvalidInput:
    el stock solo cambia registrando movimientos.
    """
    authorize(principal, Operacion.ACTUALIZAR, Entidad.MATERIAL)

    no_editables = set(fields) - CAMPOS_EDITABLES
    if no_editables:
        raise InvalidInput(
            "Campos no editables: " + ", ".join(sorted(no_editables)),
            campos=sorted(no_editables),
        )

    cambios: dict[str, Any] = {}
    if "nombre" in fields:
        cambios["nombre"] = require_text(fields["nombre"], "nombre", 150)
    if "unidad" in fields:
        cambios["unidad"] = require_text(fields["unidad"], "unidad", 30)
    if "descripcion" in fields:
        cambios["descripcion"] = optional_text(fields["descripcion"], "descripcion", 500)
    if "stock_minimo" in fields:
        cambios["stock_minimo"] = parse_decimal(fields["stock_minimo"], "stock_minimo")
    if "precio" in fields:
        cambios["precio"] = parse_decimal(fields["precio"], "precio", decimal_places=2)

    material = _load(db, material_id)
    for campo, valor in cambios.items():
        setattr(material, campo, valor)

    try:
        db.add(material)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceUnavailable() from e

    db.refresh(material)
    logger.info(
        "catalog.update",
        material_id=material.id,
        fields=",".join(sorted(cambios)),
        actor_id=principal.id,
    )
    return material


def delete_material(db: Session, principal: Principal, material_id: int) -> Material:
    """
    Elimina un material (solo admin).

    Un material con movimientos no se puede eliminar: el historial del ledger
    es inmutable y no puede quedar huérfano.
    """
    authorize(principal, Operacion.ELIMINAR, Entidad.MATERIAL)
    material = _load(db, material_id)
    codigo = material.codigo

    try:
        has_movements = db.exec(
            select(Movement.id).where(Movement.material_id == material_id)
        ).first()
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e

    if has_movements is not None:
        raise MaterialHasMovements(id=material_id, codigo=codigo)

    try:
        db.delete(material)
        db.commit()
    except IntegrityError as e:
        # Se registró un movimiento entre la comprobación y el borrado
        db.rollback()
        raise MaterialHasMovements(id=material_id, codigo=codigo) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceUnavailable() from e

    logger.info(
        "catalog.delete",
        material_id=material_id,
        codigo=codigo,
        actor_id=principal.id,
    )
    return material


def get_material(db: Session, principal: Principal, material_id: int) -> Material:
    authorize(principal, Operacion.LEER, Entidad.MATERIAL)
    return _load(db, material_id)


def list_materials(
    db: Session,
    principal: Principal,
    search: Optional[str] = None,
    bajo_stock: Optional[bool] = None,
    limit: int = 10,
    offset: int = 0,
) -> tuple[list[Material], int]:
    """Lista materiales filtrando por nombre/código y por stock bajo."""
    authorize(principal, Operacion.LEER, Entidad.MATERIAL)
    try:
        statement = select(Material)

        if search:
            search_like = f"%{search.lower()}%"
            statement = statement.where(
                func.lower(Material.nombre).like(search_like)
                | func.lower(Material.codigo).like(search_like)
            )

        if bajo_stock is True:
            statement = statement.where(Material.stock <= Material.stock_minimo)
        elif bajo_stock is False:
            statement = statement.where(Material.stock > Material.stock_minimo)

        total = db.exec(select(func.count()).select_from(statement.subquery())).one()
        materials = db.exec(
            statement.order_by(Material.nombre, Material.id).limit(limit).offset(offset)
        ).all()
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e

    return list(materials), total


def reconcile_material(db: Session, principal: Principal, material_id: int) -> dict:
    """
    Comprueba que stock == stock_inicial + Σ entradas − Σ salidas.

    Solo lectura: si hay diferencia la registra en el log, no corrige el stock.
    """
    authorize(principal, Operacion.LEER, Entidad.MATERIAL)
    material = _load(db, material_id)

    try:
        rows = db.exec(
            select(Movement.tipo, Movement.cantidad).where(
                Movement.material_id == material_id
            )
        ).all()
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e

    entradas = sum(
        (cantidad for tipo, cantidad in rows if tipo == TipoMovimiento.ENTRADA.value),
        Decimal("0"),
    )
    salidas = sum(
        (cantidad for tipo, cantidad in rows if tipo == TipoMovimiento.SALIDA.value),
        Decimal("0"),
    )
    esperado = material.stock_inicial + entradas - salidas
    consistente = esperado == material.stock

    if not consistente:
        logger.warning(
            "catalog.reconcile.mismatch",
            material_id=material_id,
            stock=str(material.stock),
            expected=str(esperado),
            diff=str(material.stock - esperado),
        )

    return {
        "material_id": material.id,
        "codigo": material.codigo,
        "stock": material.stock,
        "stock_inicial": material.stock_inicial,
        "total_entradas": entradas,
        "total_salidas": salidas,
        "stock_esperado": esperado,
        "movimientos": len(rows),
        "consistente": consistente,
    }
