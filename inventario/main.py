from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware  # CORS
from fastapi.responses import JSONResponse
from inventario.exceptions import InventarioError
from inventario.models.database import create_db_and_tables
from inventario.routers import auth, materials, movements, reports, users
from inventario.utils.getenv import get_env, get_int_env, get_list_env
from inventario.utils.logger import configure_logging, get_logger

logger = get_logger("api")


# Configurar el logging y crear las tablas al iniciar la aplicación
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_db_and_tables()
    yield


app = FastAPI(title="Inventario de materias primas", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_list_env("CORS_ORIGINS", ["http://localhost:5173"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InventarioError)
async def inventario_error_handler(request: Request, exc: InventarioError):
    """Traduce los errores del dominio a una respuesta JSON con su código HTTP."""
    if exc.retryable:
        logger.error(
            "api.error", code=exc.code, path=request.url.path, error=exc.message
        )
    else:
        logger.info("api.rejected", code=exc.code, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.as_dict())


# Incluir routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(materials.router)
app.include_router(movements.router)
app.include_router(reports.router)


@app.get("/")
def read_root():
    return {"message": "API funcionando correctamente"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "inventario.main:app",
        host=get_env("HOST", "127.0.0.1"),
        port=get_int_env("PORT", 8000),
    )
