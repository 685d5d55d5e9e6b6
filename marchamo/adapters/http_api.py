import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from marchamo.adapters import qr_render
from marchamo.application.services import InvalidToken, VehicleAlreadyExists, VehicleNotFound, VehicleService
from marchamo.config import get_settings
from marchamo.deps import get_db, get_token_codec
from marchamo.domain.models import (
    ConsultaOut,
    MarchamoIn,
    RevisionIn,
    TokenOut,
    VehiculoCreate,
    VehiculoDetalle,
    VehiculoList,
    VehiculoUpdate,
)
from marchamo.domain.qr_token import PlateTokenCodec, normalize_plate

"""
Endpoints REST.

    - GET  /consulta/{placa}            consulta publica (front)
    - GET/POST/PUT/DELETE /vehiculos    CRUD del Dashboard + historial
    - GET  /token/{placa}               token QR para el boton "Ir al front"
    - GET  /qr/{placa}.png              QR simple
    - GET  /qr-print/{placa}.png        hoja imprimible (?color=green|red|orange)
    - GET  /qr/verify|info|lookup/{token}  resolucion de un QR escaneado

Internamente instancia VehicleService por request (sesion de BDD + codec QR).
Ante un token invalido nunca se informa que paso de la verificacion fallo.
"""

logger = logging.getLogger(__name__)

api_router = APIRouter()


def get_service(
    session: AsyncSession = Depends(get_db),
    codec: PlateTokenCodec = Depends(get_token_codec),
) -> VehicleService:
    return VehicleService(session, codec)


def _placa(raw: str) -> str:
    placa = normalize_plate(raw)
    if not placa:
        raise HTTPException(status_code=400, detail="Placa requerida")
    return placa


def _not_found(exc: VehicleNotFound) -> HTTPException:
    return HTTPException(status_code=404, detail=exc.message)


# =========================
# Health
# =========================
@api_router.get("/health")
async def health():
    settings = get_settings()
    return {
        "ok": True,
        "db": settings.database_url.split(":", 1)[0].split("+", 1)[0],
        "front_url": settings.front_url,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# =========================
# Consulta publica por placa
# =========================
@api_router.get("/consulta/{placa}", response_model=ConsultaOut)
async def consulta(placa: str, service: VehicleService = Depends(get_service)):
    try:
        return await service.lookup(_placa(placa))
    except VehicleNotFound as e:
        raise _not_found(e)


# =========================
# Dashboard
# =========================
@api_router.get("/vehiculos", response_model=VehiculoList)
async def list_vehiculos(service: VehicleService = Depends(get_service)):
    return await service.list_vehicles()


@api_router.get("/vehiculos/{placa}", response_model=VehiculoDetalle)
async def detalle_vehiculo(placa: str, service: VehicleService = Depends(get_service)):
    try:
        return await service.detail(_placa(placa))
    except VehicleNotFound as e:
        raise _not_found(e)


@api_router.post("/vehiculos", status_code=201)
async def create_vehiculo(body: VehiculoCreate, service: VehicleService = Depends(get_service)):
    try:
        vehiculo = await service.create(body)
    except VehicleAlreadyExists as e:
        raise HTTPException(status_code=409, detail=e.message)
    return {"message": "Vehículo creado", "placa": vehiculo.placa, "id": vehiculo.id}


# Placa no se cambia
@api_router.put("/vehiculos/{placa}")
async def update_vehiculo(placa: str, body: VehiculoUpdate, service: VehicleService = Depends(get_service)):
    try:
        await service.update(_placa(placa), body)
    except VehicleNotFound as e:
        raise _not_found(e)
    return {"ok": True, "message": "Vehículo actualizado"}


@api_router.delete("/vehiculos/{placa}")
async def delete_vehiculo(placa: str, service: VehicleService = Depends(get_service)):
    try:
        await service.delete(_placa(placa))
    except VehicleNotFound:
        raise HTTPException(status_code=404, detail="No existe")
    return {"ok": True}


@api_router.post("/vehiculos/{placa}/marchamo", status_code=201)
async def add_marchamo(placa: str, body: MarchamoIn, service: VehicleService = Depends(get_service)):
    try:
        await service.add_marchamo(_placa(placa), body)
    except VehicleNotFound as e:
        raise _not_found(e)
    return {"ok": True, "message": "Marchamo registrado", "anio_validez": body.anio_validez}


@api_router.post("/vehiculos/{placa}/revision", status_code=201)
async def add_revision(placa: str, body: RevisionIn, service: VehicleService = Depends(get_service)):
    try:
        await service.add_revision(_placa(placa), body)
    except VehicleNotFound as e:
        raise _not_found(e)
    return {"ok": True, "message": "Revisión registrada", "anio_validez": body.anio_validez}


# =========================
# Token / QR
# =========================
@api_router.get("/token/{placa}", response_model=TokenOut)
async def token_por_placa(placa: str, service: VehicleService = Depends(get_service)):
    placa = _placa(placa)
    try:
        token = await service.issue_token(placa)
    except VehicleNotFound as e:
        raise _not_found(e)
    return TokenOut(placa=placa, token=token)


@api_router.get("/qr/{placa}.png")
async def qr_png(placa: str, service: VehicleService = Depends(get_service)):
    try:
        token = await service.issue_token(_placa(placa))
    except VehicleNotFound as e:
        raise _not_found(e)
    url = qr_render.qr_url(get_settings().front_url, token)
    png = await run_in_threadpool(qr_render.render_qr_png, url)
    return Response(content=png, media_type="image/png")


@api_router.get("/qr-print/{placa}.png")
async def qr_print_png(placa: str, color: Optional[str] = None, service: VehicleService = Depends(get_service)):
    try:
        data = await service.print_card_data(_placa(placa))
    except VehicleNotFound as e:
        raise _not_found(e)
    url = qr_render.qr_url(get_settings().front_url, data.token)
    png = await run_in_threadpool(
        qr_render.render_print_card,
        data.vehiculo,
        url,
        data.marchamo_anio,
        data.expired,
        color,
    )
    return Response(content=png, media_type="image/png")


@api_router.get("/qr/verify/{token}")
async def qr_verify(token: str, service: VehicleService = Depends(get_service)):
    try:
        placa = await service.resolve_token(token)
    except InvalidToken:
        raise HTTPException(status_code=400, detail="Token inválido")
    except VehicleNotFound as e:
        raise _not_found(e)
    return {"ok": True, "placa": placa}


@api_router.get("/qr/info/{token}")
async def qr_info(token: str, service: VehicleService = Depends(get_service)):
    try:
        placa = service.verify_token(token)
    except InvalidToken:
        raise HTTPException(status_code=401, detail="QR inválido")
    return {"placa": placa}


@api_router.get("/qr/lookup/{token}", response_model=ConsultaOut)
async def qr_lookup(token: str, service: VehicleService = Depends(get_service)):
    try:
        return await service.lookup_by_token(token)
    except InvalidToken:
        raise HTTPException(status_code=401, detail="QR inválido")
    except VehicleNotFound as e:
        raise _not_found(e)
