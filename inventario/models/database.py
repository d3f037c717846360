from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session
from inventario.utils.getenv import get_bool_env, get_required_env

# Conectar a la base de datos existente
DATABASE_URL = get_required_env("DATABASE_URL")


def build_engine(url: str, echo: bool | None = None) -> Engine:
    """Crea el engine. En SQLite activa las claves foráneas y permite hilos."""
    is_sqlite = url.startswith("sqlite")
    connect_args = {"check_same_thread": False, "timeout": 30} if is_sqlite else {}
    new_engine = create_engine(
        url,
        echo=get_bool_env("DB_ECHO") if echo is None else echo,
        connect_args=connect_args,
    )

    if is_sqlite:

        @event.listens_for(new_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine(DATABASE_URL)


def get_db():
    """Obtiene una sesión de la base de datos."""
    with Session(engine) as session:
        yield session


def create_db_and_tables(target: Engine | None = None):
    # Importa las tablas para registrarlas en SQLModel.metadata
    from inventario.models import material, movement, user  # noqa: F401

    SQLModel.metadata.create_all(target or engine)
