from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Optional
from datetime import datetime

from marchamo.domain.qr_token import normalize_plate

"""
Contratos del dominio (Pydantic): cuerpos de request del Dashboard y respuestas
de consulta. Los nombres de campo son los que ya consume el front (en castellano).
"""


class _Body(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


# ===== Historial =====

class MarchamoIn(_Body):
    anio_validez: int = Field(gt=0)
    monto: Optional[float] = None
    estado: Optional[str] = Field(default=None, max_length=40)

    @field_validator("estado")
    @classmethod
    def _empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class RevisionIn(_Body):
    anio_validez: int = Field(gt=0)
    resultado: Optional[str] = Field(default=None, max_length=40)
    observaciones: Optional[str] = None

    @field_validator("resultado", "observaciones")
    @classmethod
    def _empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class MarchamoHistorial(_Body):
    """Marchamo enviado junto a una edicion; sin datos se asume el anio en curso."""
    anio_validez: Optional[int] = Field(default=None, gt=0)
    monto: Optional[float] = None
    estado: Optional[str] = Field(default=None, max_length=40)


class RevisionHistorial(_Body):
    anio_validez: Optional[int] = Field(default=None, gt=0)
    resultado: Optional[str] = Field(default=None, max_length=40)
    observaciones: Optional[str] = None


# ===== Vehiculos =====

class VehiculoCreate(_Body):
    placa: str = Field(min_length=1, max_length=16)
    marca: str = Field(min_length=1, max_length=80)
    modelo: str = Field(min_length=1, max_length=80)
    anio: int = Field(gt=0)
    numero_chasis: str = Field(min_length=1, max_length=40)
    tipo: Optional[str] = Field(default=None, max_length=40)
    color: Optional[str] = Field(default=None, max_length=40)
    caracteristicas: Optional[Any] = None
    marchamo: Optional[MarchamoIn] = None
    revision: Optional[RevisionIn] = None

    @field_validator("placa")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_plate(v)

    @field_validator("tipo", "color")
    @classmethod
    def _empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class VehiculoUpdate(_Body):
    """Edicion parcial: solo se tocan los campos presentes en el body.

    La placa no se cambia. tipo/color/caracteristicas aceptan null para borrar.
    """
    marca: Optional[str] = Field(default=None, min_length=1, max_length=80)
    modelo: Optional[str] = Field(default=None, min_length=1, max_length=80)
    anio: Optional[int] = Field(default=None, gt=0)
    numero_chasis: Optional[str] = Field(default=None, min_length=1, max_length=40)
    tipo: Optional[str] = Field(default=None, max_length=40)
    color: Optional[str] = Field(default=None, max_length=40)
    caracteristicas: Optional[Any] = None
    marchamo: Optional[MarchamoHistorial] = None
    rtv: Optional[RevisionHistorial] = None

    @field_validator("tipo", "color")
    @classmethod
    def _empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


# ===== Respuestas =====

class _Row(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class MarchamoOut(_Row):
    id: int
    vehiculo_id: int
    anio_validez: int
    monto: Optional[float] = None
    estado: Optional[str] = None
    created_at: Optional[datetime] = None


class RevisionOut(_Row):
    id: int
    vehiculo_id: int
    anio_validez: int
    resultado: Optional[str] = None
    observaciones: Optional[str] = None
    created_at: Optional[datetime] = None


class VehiculoOut(_Row):
    id: int
    placa: str
    marca: str
    modelo: str
    anio: int
    color: Optional[str] = None
    tipo: Optional[str] = None
    caracteristicas: Optional[Any] = None
    numero_chasis: str
    created_at: Optional[datetime] = None


class ConsultaOut(BaseModel):
    placa: str
    marca: str
    modelo: str
    anio: int
    color: Optional[str] = None
    tipo: Optional[str] = None
    numero_chasis: str
    caracteristicas: Optional[Any] = None
    ultimo_marchamo: Optional[MarchamoOut] = None
    ultima_revision: Optional[RevisionOut] = None


class VehiculoListItem(_Row):
    id: int
    placa: str
    marca: str
    modelo: str
    anio: int
    tipo: Optional[str] = None
    color: Optional[str] = None
    numero_chasis: str
    marchamo_anio: Optional[int] = None
    marchamo_estado: Optional[str] = None


class VehiculoList(BaseModel):
    total: int
    items: List[VehiculoListItem]


class VehiculoDetalle(BaseModel):
    vehiculo: VehiculoOut
    marchamos: List[MarchamoOut]
    revisiones: List[RevisionOut]


class TokenOut(BaseModel):
    placa: str
    token: str
