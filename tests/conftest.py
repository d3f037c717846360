"""
Fixtures de pytest para el inventario.

Cada test usa su propia base de datos SQLite en un fichero temporal, así los
tests de concurrencia pueden abrir varias conexiones reales.
"""

import os

# Antes de importar la app: database.py y authentication.py las exigen
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "clave-de-pruebas")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from inventario.main import app
from inventario.models.database import build_engine, create_db_and_tables, get_db
from inventario.models.enums import Rol
from inventario.models.material import Material
from inventario.models.user import User, UserRole
from inventario.services.authorization import Principal
from inventario.utils.authentication import create_access_token


@pytest.fixture
def engine(tmp_path):
    """Engine sobre un fichero SQLite con todas las tablas creadas."""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'inventario.db'}", echo=False)
    create_db_and_tables(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        yield session


def _create_user(db, nombre, email, roles, activo=True):
    user = User(nombre=nombre, email=email, passwd="sin-hash", activo=activo)
    db.add(user)
    db.flush()
    for rol in roles:
        db.add(UserRole(id_usuario=user.id, rol=rol.value))
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db):
    return _create_user(db, "Ana Admin", "ana@josafat.com", [Rol.ADMIN])


@pytest.fixture
def almacenero_user(db):
    return _create_user(db, "Carlos Almacén", "carlos@josafat.com", [Rol.ALMACENERO])


@pytest.fixture
def produccion_user(db):
    return _create_user(db, "Pilar Producción", "pilar@josafat.com", [Rol.PRODUCCION])


@pytest.fixture
def sin_roles_user(db):
    return _create_user(db, "Sergio Sinrol", "sergio@josafat.com", [])


@pytest.fixture
def admin(admin_user):
    return Principal(id=admin_user.id, roles=frozenset({Rol.ADMIN}), nombre=admin_user.nombre)


@pytest.fixture
def almacenero(almacenero_user):
    return Principal(
        id=almacenero_user.id,
        roles=frozenset({Rol.ALMACENERO}),
        nombre=almacenero_user.nombre,
    )


@pytest.fixture
def produccion(produccion_user):
    return Principal(
        id=produccion_user.id,
        roles=frozenset({Rol.PRODUCCION}),
        nombre=produccion_user.nombre,
    )


@pytest.fixture
def sin_roles(sin_roles_user):
    return Principal(id=sin_roles_user.id, roles=frozenset(), nombre=sin_roles_user.nombre)


@pytest.fixture
def tela(db):
    """Material TEL-001 con 150 metros de stock y mínimo 20."""
    material = Material(
        codigo="TEL-001",
        nombre="Tela algodón",
        unidad="metros",
        stock=Decimal("150"),
        stock_inicial=Decimal("150"),
        stock_minimo=Decimal("20"),
        precio=Decimal("12.50"),
    )
    db.add(material)
    db.commit()
    db.refresh(material)
    return material


@pytest.fixture
def hilo(db):
    """Material HIL-002 por debajo de su stock mínimo."""
    material = Material(
        codigo="HIL-002",
        nombre="Hilo poliéster",
        unidad="conos",
        stock=Decimal("5"),
        stock_inicial=Decimal("5"),
        stock_minimo=Decimal("10"),
        precio=Decimal("3.00"),
    )
    db.add(material)
    db.commit()
    db.refresh(material)
    return material


@pytest.fixture
def client(engine):
    """TestClient con la sesión apuntando a la base de datos del test."""

    def override_get_db():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Cabecera Authorization con un token válido para `user`."""

    def build(user) -> dict:
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return build
