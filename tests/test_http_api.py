"""Tests de la API REST: CRUD del Dashboard, consulta publica y QR.

Usa el TestClient de FastAPI contra una BDD SQLite temporal.
"""

from datetime import datetime

from marchamo.domain.qr_token import PlateTokenCodec

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
codec = PlateTokenCodec("dev_secret_change_me")


# --- health ---

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["ok"] is True
    assert data["db"] == "sqlite"
    assert data["front_url"] == "http://front.test"


# --- POST /vehiculos ---

def test_create_vehiculo(client, sample_vehiculo):
    resp = client.post("/vehiculos", json=sample_vehiculo)
    assert resp.status_code == 201
    data = resp.json()
    assert data["message"] == "Vehículo creado"
    assert data["placa"] == "ABC123"
    assert isinstance(data["id"], int)


def test_create_duplicate_plate(client, created, sample_vehiculo):
    sample_vehiculo["placa"] = "abc123"
    resp = client.post("/vehiculos", json=sample_vehiculo)
    assert resp.status_code == 409
    assert resp.json()["message"] == "Ya existe un vehículo con esa placa"


def test_create_missing_fields(client):
    resp = client.post("/vehiculos", json={"placa": "XYZ999", "marca": "Kia"})
    assert resp.status_code == 400
    data = resp.json()
    assert "modelo" in data["campos"]
    assert "anio" in data["campos"]
    assert "numero_chasis" in data["campos"]


def test_create_blank_plate(client, sample_vehiculo):
    sample_vehiculo["placa"] = "   "
    resp = client.post("/vehiculos", json=sample_vehiculo)
    assert resp.status_code == 400
    assert resp.json()["campos"] == ["placa"]


def test_create_plate_too_long(client, sample_vehiculo):
    sample_vehiculo["placa"] = "A" * 17
    resp = client.post("/vehiculos", json=sample_vehiculo)
    assert resp.status_code == 400
    assert resp.json()["campos"] == ["placa"]
    assert client.get("/vehiculos").json()["total"] == 0


def test_create_plate_max_length(client, sample_vehiculo):
    sample_vehiculo["placa"] = " " + "b" * 16 + " "
    resp = client.post("/vehiculos", json=sample_vehiculo)
    assert resp.status_code == 201
    assert resp.json()["placa"] == "B" * 16


def test_update_field_too_long(client, created):
    resp = client.put("/vehiculos/ABC123", json={"numero_chasis": "X" * 41})
    assert resp.status_code == 400
    assert resp.json()["campos"] == ["numero_chasis"]


def test_create_without_history(client):
    body = {"placa": "xyz999", "marca": "Kia", "modelo": "Rio", "anio": 2015, "numero_chasis": "KNA1"}
    assert client.post("/vehiculos", json=body).status_code == 201
    data = client.get("/consulta/XYZ999").json()
    assert data["ultimo_marchamo"] is None
    assert data["ultima_revision"] is None
    assert data["color"] is None


# --- GET /consulta/{placa} ---

def test_consulta(client, created):
    resp = client.get("/consulta/abc123")
    assert resp.status_code == 200
    data = resp.json()
    assert data["placa"] == "ABC123"
    assert data["marca"] == "Toyota"
    assert data["caracteristicas"] == {"transmision": "Automática", "combustible": "Gasolina"}
    assert data["ultimo_marchamo"]["anio_validez"] == 2026
    assert data["ultimo_marchamo"]["estado"] == "Vigente"
    assert data["ultima_revision"]["resultado"] == "Aprobado"


def test_consulta_returns_latest_records(client, created):
    client.post("/vehiculos/ABC123/marchamo", json={"anio_validez": 2024, "estado": "Vencido"})
    client.post("/vehiculos/ABC123/marchamo", json={"anio_validez": 2027, "monto": 99000})
    client.post("/vehiculos/ABC123/revision", json={"anio_validez": 2025, "resultado": "Rechazado"})
    data = client.get("/consulta/ABC123").json()
    assert data["ultimo_marchamo"]["anio_validez"] == 2027
    assert data["ultimo_marchamo"]["monto"] == 99000
    assert data["ultima_revision"]["anio_validez"] == 2026


def test_consulta_not_found(client):
    resp = client.get("/consulta/NOPE00")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Vehículo no encontrado"


def test_consulta_blank_plate(client):
    resp = client.get("/consulta/%20%20")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Placa requerida"


# --- GET /vehiculos ---

def test_list_empty(client):
    resp = client.get("/vehiculos")
    assert resp.status_code == 200
    assert resp.json() == {"total": 0, "items": []}


def test_list_with_latest_marchamo(client, created):
    client.post("/vehiculos/ABC123/marchamo", json={"anio_validez": 2027, "estado": "Pendiente"})
    client.post("/vehiculos", json={
        "placa": "aaa111", "marca": "Honda", "modelo": "Fit", "anio": 2012, "numero_chasis": "HND1",
    })
    data = client.get("/vehiculos").json()
    assert data["total"] == 2
    first, second = data["items"]
    assert first["placa"] == "AAA111"
    assert first["marchamo_anio"] is None
    assert second["placa"] == "ABC123"
    assert second["marchamo_anio"] == 2027
    assert second["marchamo_estado"] == "Pendiente"


def test_list_same_year_marchamos_single_row(client, created):
    client.post("/vehiculos/ABC123/marchamo", json={"anio_validez": 2026, "estado": "Pagado"})
    data = client.get("/vehiculos").json()
    assert data["total"] == 1
    assert data["items"][0]["marchamo_anio"] == 2026
    assert data["items"][0]["marchamo_estado"] == "Pagado"
    consulta = client.get("/consulta/ABC123").json()
    assert consulta["ultimo_marchamo"]["estado"] == "Pagado"


# --- GET /vehiculos/{placa} ---

def test_detalle_with_history(client, created):
    client.post("/vehiculos/ABC123/marchamo", json={"anio_validez": 2025, "estado": "Vencido"})
    client.post("/vehiculos/ABC123/revision", json={"anio_validez": 2027, "observaciones": "Luces"})
    resp = client.get("/vehiculos/abc123")
    assert resp.status_code == 200
    data = resp.json()
    assert data["vehiculo"]["placa"] == "ABC123"
    assert data["vehiculo"]["numero_chasis"] == "JTDBR32E123456789"
    assert [m["anio_validez"] for m in data["marchamos"]] == [2026, 2025]
    assert [r["anio_validez"] for r in data["revisiones"]] == [2027, 2026]
    assert data["revisiones"][0]["resultado"] is None


def test_detalle_not_found(client):
    assert client.get("/vehiculos/NOPE00").status_code == 404


# --- PUT /vehiculos/{placa} ---

def test_update_partial(client, created):
    resp = client.put("/vehiculos/abc123", json={"color": "Negro", "anio": 2019})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "message": "Vehículo actualizado"}
    veh = client.get("/vehiculos/ABC123").json()["vehiculo"]
    assert veh["color"] == "Negro"
    assert veh["anio"] == 2019
    assert veh["marca"] == "Toyota"
    assert veh["tipo"] == "Carro"


def test_update_null_clears_optional_fields(client, created):
    client.put("/vehiculos/ABC123", json={"tipo": None, "caracteristicas": None, "marca": None})
    veh = client.get("/vehiculos/ABC123").json()["vehiculo"]
    assert veh["tipo"] is None
    assert veh["caracteristicas"] is None
    assert veh["marca"] == "Toyota"


def test_update_rejects_empty_required(client, created):
    resp = client.put("/vehiculos/ABC123", json={"marca": "   "})
    assert resp.status_code == 400
    assert client.get("/vehiculos/ABC123").json()["vehiculo"]["marca"] == "Toyota"


def test_update_appends_history_with_defaults(client, created):
    resp = client.put("/vehiculos/ABC123", json={"marchamo": {}, "rtv": {"anio_validez": 2027}})
    assert resp.status_code == 200
    data = client.get("/vehiculos/ABC123").json()
    year = datetime.now().year
    estados = {(m["anio_validez"], m["estado"]) for m in data["marchamos"]}
    assert (year, "Vigente") in estados
    assert data["revisiones"][0]["anio_validez"] == 2027
    assert data["revisiones"][0]["resultado"] == "Aprobado"


def test_update_not_found(client):
    assert client.put("/vehiculos/NOPE00", json={"color": "Rojo"}).status_code == 404


# --- DELETE /vehiculos/{placa} ---

def test_delete(client, created):
    resp = client.delete("/vehiculos/abc123")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert client.get("/consulta/ABC123").status_code == 404
    assert client.get("/vehiculos").json()["total"] == 0


def test_delete_then_recreate_has_clean_history(client, created, sample_vehiculo):
    client.delete("/vehiculos/ABC123")
    del sample_vehiculo["marchamo"]
    del sample_vehiculo["revision"]
    assert client.post("/vehiculos", json=sample_vehiculo).status_code == 201
    data = client.get("/vehiculos/ABC123").json()
    assert data["marchamos"] == []
    assert data["revisiones"] == []


def test_delete_not_found(client):
    resp = client.delete("/vehiculos/NOPE00")
    assert resp.status_code == 404
    assert resp.json()["message"] == "No existe"


# --- historial ---

def test_add_marchamo(client, created):
    resp = client.post("/vehiculos/abc123/marchamo", json={"anio_validez": 2027, "monto": 96000, "estado": "Vigente"})
    assert resp.status_code == 201
    assert resp.json()["message"] == "Marchamo registrado"


def test_add_marchamo_requires_year(client, created):
    assert client.post("/vehiculos/ABC123/marchamo", json={"monto": 1}).status_code == 400


def test_add_marchamo_not_found(client):
    assert client.post("/vehiculos/NOPE00/marchamo", json={"anio_validez": 2026}).status_code == 404


def test_add_revision(client, created):
    resp = client.post("/vehiculos/ABC123/revision", json={"anio_validez": 2027, "resultado": "Aprobado"})
    assert resp.status_code == 201
    assert resp.json()["message"] == "Revisión registrada"


def test_add_revision_not_found(client):
    assert client.post("/vehiculos/NOPE00/revision", json={"anio_validez": 2026}).status_code == 404


# --- token / QR ---

def test_token_for_plate(client, created):
    resp = client.get("/token/abc123")
    assert resp.status_code == 200
    data = resp.json()
    assert data["placa"] == "ABC123"
    assert data["token"] == codec.issue("ABC123")
    assert data["token"].startswith("QUJDMTIz.")


def test_token_not_found(client):
    assert client.get("/token/NOPE00").status_code == 404


def test_qr_verify(client, created):
    token = client.get("/token/ABC123").json()["token"]
    resp = client.get(f"/qr/verify/{token}")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "placa": "ABC123"}


def test_qr_verify_invalid(client, created):
    for token in ["not-a-token", "QUJDMTIz.garbage", codec.issue("ABC123") + "x"]:
        resp = client.get(f"/qr/verify/{token}")
        assert resp.status_code == 400
        assert resp.json() == {"message": "Token inválido"}


def test_qr_verify_deleted_vehicle(client, created):
    token = client.get("/token/ABC123").json()["token"]
    client.delete("/vehiculos/ABC123")
    assert client.get(f"/qr/verify/{token}").status_code == 404


def test_qr_info(client):
    resp = client.get(f"/qr/info/{codec.issue('zzz000')}")
    assert resp.status_code == 200
    assert resp.json() == {"placa": "ZZZ000"}


def test_qr_info_invalid(client):
    resp = client.get("/qr/info/QUJDMTIz.garbage")
    assert resp.status_code == 401
    assert resp.json() == {"message": "QR inválido"}


def test_qr_lookup(client, created):
    resp = client.get(f"/qr/lookup/{codec.issue('ABC123')}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["placa"] == "ABC123"
    assert data["ultimo_marchamo"]["anio_validez"] == 2026


def test_qr_lookup_other_secret(client, created):
    token = PlateTokenCodec("otro_secreto").issue("ABC123")
    assert client.get(f"/qr/lookup/{token}").status_code == 401


def test_qr_lookup_not_found(client):
    assert client.get(f"/qr/lookup/{codec.issue('NOPE00')}").status_code == 404


def test_qr_png(client, created):
    resp = client.get("/qr/abc123.png")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content.startswith(PNG_MAGIC)


def test_qr_png_not_found(client):
    assert client.get("/qr/NOPE00.png").status_code == 404


def test_qr_print_png(client, created):
    resp = client.get("/qr-print/ABC123.png?color=orange")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content.startswith(PNG_MAGIC)


def test_qr_print_png_not_found(client):
    assert client.get("/qr-print/NOPE00.png").status_code == 404
