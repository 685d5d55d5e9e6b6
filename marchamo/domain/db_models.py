from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase): pass


class Vehiculo(Base):
    __tablename__ = "vehiculos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    placa: Mapped[str] = mapped_column(String(16), nullable=False)   # normalizada (trim + upper)
    marca: Mapped[str] = mapped_column(String(80), nullable=False)
    modelo: Mapped[str] = mapped_column(String(80), nullable=False)
    anio: Mapped[int] = mapped_column(Integer, nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(40))
    tipo: Mapped[Optional[str]] = mapped_column(String(40))
    caracteristicas: Mapped[Optional[Any]] = mapped_column(JSON)
    numero_chasis: Mapped[str] = mapped_column(String(40), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    marchamos: Mapped[List["Marchamo"]] = relationship(
        back_populates="vehiculo", cascade="all, delete-orphan", passive_deletes=True
    )
    revisiones: Mapped[List["RevisionVehicular"]] = relationship(
        back_populates="vehiculo", cascade="all, delete-orphan", passive_deletes=True
    )


class Marchamo(Base):
    __tablename__ = "marchamos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vehiculo_id: Mapped[int] = mapped_column(
        ForeignKey("vehiculos.id", ondelete="CASCADE"), nullable=False
    )
    anio_validez: Mapped[int] = mapped_column(Integer, nullable=False)
    monto: Mapped[Optional[float]] = mapped_column(Float)
    estado: Mapped[Optional[str]] = mapped_column(String(40))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    vehiculo: Mapped[Vehiculo] = relationship(back_populates="marchamos")


class RevisionVehicular(Base):
    __tablename__ = "revisiones_vehiculares"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vehiculo_id: Mapped[int] = mapped_column(
        ForeignKey("vehiculos.id", ondelete="CASCADE"), nullable=False
    )
    anio_validez: Mapped[int] = mapped_column(Integer, nullable=False)
    resultado: Mapped[Optional[str]] = mapped_column(String(40))
    observaciones: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    vehiculo: Mapped[Vehiculo] = relationship(back_populates="revisiones")


Index("ux_vehiculos_placa", Vehiculo.placa, unique=True)
Index("ix_marchamos_vehiculo_anio", Marchamo.vehiculo_id, Marchamo.anio_validez)
Index("ix_revisiones_vehiculo_anio", RevisionVehicular.vehiculo_id, RevisionVehicular.anio_validez)
