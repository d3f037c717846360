from dotenv import (
    load_dotenv,
)  # Para cargar variables de entorno desde un archivo .env.
import os  # Para acceder a variables de entorno.

load_dotenv()


def get_required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise Exception(f"Env var {name} is required but not found.")
    return value


def get_env(name: str, default: str) -> str:
    """Lee una variable de texto; si no existe o está vacía usa `default`."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def get_int_env(name: str, default: int) -> int:
    """Lee una variable entera; si no existe usa `default`."""
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def get_bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "si", "on"}


def get_list_env(name: str, default: list[str]) -> list[str]:
    """Lista separada por comas (p. ej. CORS_ORIGINS)."""
    value = os.getenv(name)
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]
