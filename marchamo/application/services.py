import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marchamo.adapters.repo_sql import VehicleRepo
from marchamo.domain.db_models import Marchamo, RevisionVehicular, Vehiculo
from marchamo.domain.models import (
    ConsultaOut,
    MarchamoIn,
    MarchamoOut,
    RevisionIn,
    RevisionOut,
    VehiculoCreate,
    VehiculoDetalle,
    VehiculoList,
    VehiculoListItem,
    VehiculoOut,
    VehiculoUpdate,
)
from marchamo.domain.qr_token import PlateTokenCodec, Valid, normalize_plate

"""
Logica de la aplicacion sin detalles de HTTP:
1) Consulta publica por placa (ultimo marchamo + ultima revision)
2) CRUD del Dashboard con historial de marchamos / revisiones
3) Emision y resolucion de tokens QR (PlateTokenCodec inyectado)

Los errores se levantan como excepciones de dominio; el adapter HTTP las traduce.
"""

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    message = "Error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class VehicleNotFound(ServiceError):
    message = "Vehículo no encontrado"


class VehicleAlreadyExists(ServiceError):
    message = "Ya existe un vehículo con esa placa"


class InvalidToken(ServiceError):
    message = "Token inválido"


def current_year() -> int:
    return datetime.now().year


@dataclass(frozen=True)
class PrintCardData:
    vehiculo: Vehiculo
    marchamo_anio: Optional[int]
    expired: bool
    token: str


class VehicleService:
    def __init__(self, session: AsyncSession, codec: PlateTokenCodec):
        self.session = session
        self.repo = VehicleRepo(session)
        self.codec = codec

    async def _require(self, placa: str) -> Vehiculo:
        vehiculo = await self.repo.get_by_plate(normalize_plate(placa))
        if vehiculo is None:
            raise VehicleNotFound()
        return vehiculo

    # ===== Consulta =====

    async def lookup(self, placa: str) -> ConsultaOut:
        vehiculo = await self._require(placa)
        marchamo = await self.repo.latest_marchamo(vehiculo.id)
        revision = await self.repo.latest_revision(vehiculo.id)
        return ConsultaOut(
            placa=vehiculo.placa,
            marca=vehiculo.marca,
            modelo=vehiculo.modelo,
            anio=vehiculo.anio,
            color=vehiculo.color,
            tipo=vehiculo.tipo,
            numero_chasis=vehiculo.numero_chasis,
            caracteristicas=vehiculo.caracteristicas,
            ultimo_marchamo=MarchamoOut.model_validate(marchamo) if marchamo else None,
            ultima_revision=RevisionOut.model_validate(revision) if revision else None,
        )

    async def list_vehicles(self) -> VehiculoList:
        rows = await self.repo.list_with_latest_marchamo()
        items = [VehiculoListItem.model_validate(dict(r._mapping)) for r in rows]
        return VehiculoList(total=len(items), items=items)

    async def detail(self, placa: str) -> VehiculoDetalle:
        vehiculo = await self._require(placa)
        marchamos = await self.repo.marchamos(vehiculo.id)
        revisiones = await self.repo.revisiones(vehiculo.id)
        return VehiculoDetalle(
            vehiculo=VehiculoOut.model_validate(vehiculo),
            marchamos=[MarchamoOut.model_validate(m) for m in marchamos],
            revisiones=[RevisionOut.model_validate(r) for r in revisiones],
        )

    # ===== CRUD =====

    async def create(self, data: VehiculoCreate) -> Vehiculo:
        if await self.repo.exists(data.placa):
            raise VehicleAlreadyExists()

        vehiculo = Vehiculo(
            placa=data.placa,
            marca=data.marca,
            modelo=data.modelo,
            anio=data.anio,
            color=data.color,
            tipo=data.tipo,
            caracteristicas=data.caracteristicas,
            numero_chasis=data.numero_chasis,
        )
        # marchamo / revision iniciales en la misma transaccion
        if data.marchamo:
            vehiculo.marchamos.append(Marchamo(**data.marchamo.model_dump()))
        if data.revision:
            vehiculo.revisiones.append(RevisionVehicular(**data.revision.model_dump()))
        self.repo.add(vehiculo)

        try:
            await self.session.commit()
        except IntegrityError:
            # Otro request inserto la misma placa entre el chequeo y el commit
            await self.session.rollback()
            raise VehicleAlreadyExists()

        logger.info("[API] vehiculo creado placa=%s id=%s", vehiculo.placa, vehiculo.id)
        return vehiculo

    async def update(self, placa: str, data: VehiculoUpdate) -> Vehiculo:
        vehiculo = await self._require(placa)
        sent = data.model_fields_set

        # Obligatorios: null equivale a "no enviado"
        for field in ("marca", "modelo", "anio", "numero_chasis"):
            value = getattr(data, field)
            if value is not None:
                setattr(vehiculo, field, value)
        # Opcionales: null borra el valor
        for field in ("tipo", "color", "caracteristicas"):
            if field in sent:
                setattr(vehiculo, field, getattr(data, field))

        if data.marchamo is not None:
            m = data.marchamo
            self.repo.add(Marchamo(
                vehiculo_id=vehiculo.id,
                anio_validez=m.anio_validez or current_year(),
                monto=m.monto,
                estado=m.estado or "Vigente",
            ))
        if data.rtv is not None:
            r = data.rtv
            self.repo.add(RevisionVehicular(
                vehiculo_id=vehiculo.id,
                anio_validez=r.anio_validez or current_year(),
                resultado=r.resultado or "Aprobado",
                observaciones=r.observaciones or None,
            ))

        await self.session.commit()
        logger.info("[API] vehiculo actualizado placa=%s campos=%s", vehiculo.placa, sorted(sent))
        return vehiculo

    async def delete(self, placa: str) -> None:
        vehiculo = await self._require(placa)
        await self.repo.delete(vehiculo)
        await self.session.commit()
        logger.info("[API] vehiculo eliminado placa=%s", vehiculo.placa)

    async def add_marchamo(self, placa: str, data: MarchamoIn) -> Marchamo:
        vehiculo = await self._require(placa)
        marchamo = Marchamo(vehiculo_id=vehiculo.id, **data.model_dump())
        self.repo.add(marchamo)
        await self.session.commit()
        return marchamo

    async def add_revision(self, placa: str, data: RevisionIn) -> RevisionVehicular:
        vehiculo = await self._require(placa)
        revision = RevisionVehicular(vehiculo_id=vehiculo.id, **data.model_dump())
        self.repo.add(revision)
        await self.session.commit()
        return revision

    # ===== QR =====

    async def issue_token(self, placa: str) -> str:
        norm = normalize_plate(placa)
        if not await self.repo.exists(norm):
            raise VehicleNotFound()
        return self.codec.issue(norm)

    def verify_token(self, token: str) -> str:
        result = self.codec.verify(token)
        if not isinstance(result, Valid):
            raise InvalidToken()
        return result.plate

    async def resolve_token(self, token: str) -> str:
        placa = self.verify_token(token)
        if not await self.repo.exists(placa):
            raise VehicleNotFound()
        return placa

    async def lookup_by_token(self, token: str) -> ConsultaOut:
        return await self.lookup(self.verify_token(token))

    async def print_card_data(self, placa: str) -> PrintCardData:
        vehiculo = await self._require(placa)
        marchamo = await self.repo.latest_marchamo(vehiculo.id)
        anio = marchamo.anio_validez if marchamo else None
        return PrintCardData(
            vehiculo=vehiculo,
            marchamo_anio=anio,
            expired=anio is not None and anio < current_year(),
            token=self.codec.issue(vehiculo.placa),
        )
