import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from marchamo.adapters.repo_sql import VehicleRepo
from marchamo.domain.db_models import Marchamo, RevisionVehicular, Vehiculo

"""
Datos de prueba. Solo inserta si la tabla vehiculos esta vacia.
Uso: python -m marchamo.seed_db   (o SEED_ON_START=true al levantar la API)
"""

logger = logging.getLogger(__name__)

SEED_YEAR = 2026

VEHICULOS = [
    # ===== CARROS =====
    ("ABC123", "Toyota", "Corolla", 2018, "Blanco", "Carro",
     {"transmision": "Automática", "combustible": "Gasolina"}, "JTDBR32E123456789"),
    ("DEF456", "Hyundai", "Elantra", 2019, "Gris", "Carro",
     {"transmision": "Manual", "combustible": "Gasolina"}, "KMHD84LF9KU123456"),
    ("GHI789", "Nissan", "Sentra", 2020, "Azul", "Carro",
     {"airbags": 6, "abs": True}, "3N1AB7AP0LY234567"),
    ("JKL321", "Kia", "Sportage", 2021, "Negro", "Carro",
     {"traccion": "AWD", "combustible": "Gasolina"}, "KNDPMCAC5M7890123"),
    ("MNO654", "Mazda", "CX-5", 2022, "Rojo", "Carro",
     {"motor": "2.5L", "transmision": "Automática"}, "JM3KFBDM0N0123456"),
    ("PQR987", "Chevrolet", "Onix", 2017, "Plata", "Carro",
     {"combustible": "Gasolina"}, "9BGKS48T0HG123456"),
    ("STU147", "Ford", "Escape", 2019, "Verde", "Carro",
     {"traccion": "4x4"}, "1FMCU9HD2KUA12345"),
    ("VWX258", "Volkswagen", "Jetta", 2018, "Gris", "Carro",
     {"motor": "1.4 TSI"}, "3VW2B7AJ5JM123456"),
    ("YZA369", "Honda", "Civic", 2020, "Negro", "Carro",
     {"modoEco": True}, "2HGFC2F69LH123456"),
    ("BCD741", "Subaru", "Forester", 2021, "Blanco", "Carro",
     {"traccion": "AWD", "eyesight": True}, "JF2SKAJC2MH123456"),
    # ===== MOTOS =====
    ("MOT101", "Honda", "XR150L", 2017, "Rojo", "Moto",
     {"cilindrada": "150cc"}, "MLHXR1517H5123456"),
    ("MOT202", "Yamaha", "FZ25", 2019, "Azul", "Moto",
     {"cilindrada": "250cc"}, "ME1RG4711K2123456"),
    ("MOT303", "Suzuki", "GSX-R150", 2020, "Azul", "Moto",
     {"deportiva": True}, "JS1BK1110L2123456"),
    ("MOT404", "Kawasaki", "Ninja 400", 2021, "Verde", "Moto",
     {"cilindrada": "400cc"}, "JKAEX8A18MDA12345"),
    ("MOT505", "Honda", "CBR250R", 2016, "Negro", "Moto",
     {"abs": True}, "MLHMC4123G5123456"),
]


async def seed_db(session: AsyncSession) -> int:
    """Inserta los vehiculos de prueba. Devuelve cuantos inserto (0 si ya habia datos)."""
    repo = VehicleRepo(session)
    if await repo.count() > 0:
        logger.info("[DB] ya tiene datos, seed omitido")
        return 0

    for placa, marca, modelo, anio, color, tipo, caracteristicas, chasis in VEHICULOS:
        vehiculo = Vehiculo(
            placa=placa, marca=marca, modelo=modelo, anio=anio, color=color, tipo=tipo,
            caracteristicas=caracteristicas, numero_chasis=chasis,
        )
        vehiculo.marchamos.append(Marchamo(
            anio_validez=SEED_YEAR, monto=45000 if tipo == "Moto" else 95000, estado="Vigente",
        ))
        vehiculo.revisiones.append(RevisionVehicular(
            anio_validez=SEED_YEAR, resultado="Aprobado", observaciones="Sin observaciones",
        ))
        repo.add(vehiculo)

    await session.commit()
    logger.info("[DB] seed completado: %d vehiculos", len(VEHICULOS))
    return len(VEHICULOS)


async def _main() -> None:
    from marchamo.deps import SessionLocal, init_models

    await init_models()
    async with SessionLocal() as session:
        await seed_db(session)


if __name__ == "__main__":
    from marchamo.config import configure_logging, get_settings

    configure_logging(get_settings().log_level)
    asyncio.run(_main())
