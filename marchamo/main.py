import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from marchamo.adapters.http_api import api_router
from marchamo.config import DEFAULT_QR_SECRET, configure_logging, get_settings
from marchamo.deps import SessionLocal, init_models
from marchamo.domain.qr_token import PlateTokenCodec
from marchamo.seed_db import seed_db

"""
API Marchamo: registro de vehiculos, marchamos y revisiones tecnicas (RTV),
con QR firmados para abrir la consulta del front sin exponer la placa en la URL.
"""

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="API Marchamo", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)

# El secreto se fija una sola vez al arrancar el proceso
app.state.token_codec = PlateTokenCodec(settings.qr_secret)


# El Dashboard espera siempre {"message": ...} en los errores
@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    campos = sorted({".".join(str(p) for p in err["loc"][1:]) for err in exc.errors()})
    return JSONResponse(
        status_code=400,
        content={"message": f"Datos inválidos: {', '.join(campos)}", "campos": campos},
    )


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("[API] error no controlado en %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Error interno"})


@app.on_event("startup")
async def on_startup():
    await init_models()
    if settings.seed_on_start:
        async with SessionLocal() as session:
            await seed_db(session)
        logger.info("[DB] seed ejecutado (SEED_ON_START=true)")
    if settings.qr_secret == DEFAULT_QR_SECRET:
        logger.warning("[QR] usando QR_SECRET por defecto; definilo en el entorno para produccion")
    logger.info("[API] Marchamo escuchando en el puerto %s", settings.port)


if __name__ == "__main__":
    uvicorn.run("marchamo.main:app", host="0.0.0.0", port=settings.port, reload=True)
