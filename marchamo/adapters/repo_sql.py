from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from marchamo.domain.db_models import Marchamo, RevisionVehicular, Vehiculo

"""
Acceso a DB para vehiculos y su historial (marchamos / revisiones).
Las placas llegan ya normalizadas desde la capa de aplicacion.
"""


class VehicleRepo:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_plate(self, placa: str) -> Optional[Vehiculo]:
        stmt = select(Vehiculo).where(Vehiculo.placa == placa)
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def exists(self, placa: str) -> bool:
        stmt = select(Vehiculo.id).where(Vehiculo.placa == placa).limit(1)
        res = await self.session.execute(stmt)
        return res.first() is not None

    async def latest_marchamo(self, vehiculo_id: int) -> Optional[Marchamo]:
        stmt = (
            select(Marchamo)
            .where(Marchamo.vehiculo_id == vehiculo_id)
            .order_by(Marchamo.anio_validez.desc(), Marchamo.id.desc())
            .limit(1)
        )
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def latest_revision(self, vehiculo_id: int) -> Optional[RevisionVehicular]:
        stmt = (
            select(RevisionVehicular)
            .where(RevisionVehicular.vehiculo_id == vehiculo_id)
            .order_by(RevisionVehicular.anio_validez.desc(), RevisionVehicular.id.desc())
            .limit(1)
        )
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def marchamos(self, vehiculo_id: int) -> List[Marchamo]:
        stmt = (
            select(Marchamo)
            .where(Marchamo.vehiculo_id == vehiculo_id)
            .order_by(Marchamo.anio_validez.desc(), Marchamo.id.desc())
        )
        res = await self.session.execute(stmt)
        return list(res.scalars().all())

    async def revisiones(self, vehiculo_id: int) -> List[RevisionVehicular]:
        stmt = (
            select(RevisionVehicular)
            .where(RevisionVehicular.vehiculo_id == vehiculo_id)
            .order_by(RevisionVehicular.anio_validez.desc(), RevisionVehicular.id.desc())
        )
        res = await self.session.execute(stmt)
        return list(res.scalars().all())

    async def list_with_latest_marchamo(self) -> Sequence[Row]:
        # LEFT JOIN contra el ultimo marchamo de cada vehiculo (anio mayor, luego id mayor)
        m2 = aliased(Marchamo)
        latest_id = (
            select(m2.id)
            .where(m2.vehiculo_id == Vehiculo.id)
            .order_by(m2.anio_validez.desc(), m2.id.desc())
            .limit(1)
            .correlate(Vehiculo)
            .scalar_subquery()
        )
        stmt = (
            select(
                Vehiculo.id,
                Vehiculo.placa,
                Vehiculo.marca,
                Vehiculo.modelo,
                Vehiculo.anio,
                Vehiculo.tipo,
                Vehiculo.color,
                Vehiculo.numero_chasis,
                Marchamo.anio_validez.label("marchamo_anio"),
                Marchamo.estado.label("marchamo_estado"),
            )
            .outerjoin(Marchamo, Marchamo.id == latest_id)
            .order_by(Vehiculo.placa.asc())
        )
        res = await self.session.execute(stmt)
        return res.all()

    async def count(self) -> int:
        res = await self.session.execute(select(func.count(Vehiculo.id)))
        return int(res.scalar_one())

    def add(self, obj) -> None:
        self.session.add(obj)

    async def delete(self, vehiculo: Vehiculo) -> None:
        await self.session.delete(vehiculo)
