import os
import tempfile
from pathlib import Path

import pytest

# Antes de importar la app: BDD temporal y secreto conocido
_TMP_DIR = Path(tempfile.mkdtemp(prefix="marchamo-tests-"))
DB_FILE = _TMP_DIR / "marchamo.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_FILE}"
os.environ["QR_SECRET"] = "dev_secret_change_me"
os.environ["FRONT_URL"] = "http://front.test"
os.environ["SEED_ON_START"] = "false"

from fastapi.testclient import TestClient  # noqa: E402

from marchamo.main import app  # noqa: E402


def _reset_db():
    for suffix in ("", "-wal", "-shm", "-journal"):
        path = Path(f"{DB_FILE}{suffix}")
        if path.exists():
            path.unlink()


@pytest.fixture
def fresh_db():
    _reset_db()


@pytest.fixture
def client(fresh_db):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def sample_vehiculo():
    return {
        "placa": " abc123 ",
        "marca": "Toyota",
        "modelo": "Corolla",
        "anio": 2018,
        "numero_chasis": "JTDBR32E123456789",
        "color": "Blanco",
        "tipo": "Carro",
        "caracteristicas": {"transmision": "Automática", "combustible": "Gasolina"},
        "marchamo": {"anio_validez": 2026, "monto": 95000, "estado": "Vigente"},
        "revision": {"anio_validez": 2026, "resultado": "Aprobado", "observaciones": "Sin observaciones"},
    }


@pytest.fixture
def created(client, sample_vehiculo):
    resp = client.post("/vehiculos", json=sample_vehiculo)
    assert resp.status_code == 201
    return resp.json()
