import io
import logging
from datetime import datetime
from typing import Optional

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from PIL import Image, ImageDraw, ImageFont

from marchamo.domain.db_models import Vehiculo

"""
Generacion de PNGs:
  - render_qr_png: QR "pelado" (360px) con la URL del front
  - render_print_card: hoja imprimible 1200x1600 con borde de color + resumen
"""

logger = logging.getLogger(__name__)

COLOR_MAP = {
    "green": "#22c55e",
    "red": "#ef4444",
    "orange": "#f59e0b",
}

CARD_W, CARD_H = 1200, 1600

_FONT_FILES = {
    False: ("DejaVuSans.ttf", "Arial.ttf", "arial.ttf"),
    True: ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf"),
}


def qr_url(front_url: str, token: str) -> str:
    return f"{front_url.rstrip('/')}/qr/{token}"


def _make_qr(data: str, border: int) -> Image.Image:
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=10, border=border)
    qr.add_data(data)
    qr.make(fit=True)
    return qr.make_image(fill_color="black", back_color="white").get_image().convert("RGB")


def _to_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def render_qr_png(url: str, size: int = 360) -> bytes:
    img = _make_qr(url, border=2).resize((size, size), Image.Resampling.NEAREST)
    return _to_png(img)


def _font(size: int, bold: bool = False):
    for name in _FONT_FILES[bold]:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def border_color(requested: Optional[str], expired: bool) -> str:
    """Color pedido por query (?color=) o automatico: rojo si vencido, verde si vigente."""
    key = (requested or "").strip().lower()
    if key in COLOR_MAP:
        return COLOR_MAP[key]
    return COLOR_MAP["red"] if expired else COLOR_MAP["green"]


def marchamo_label(anio: Optional[int], expired: bool) -> str:
    if anio is None:
        return "Marchamo: No registrado"
    return f"Marchamo: {anio} ({'VENCIDO' if expired else 'VIGENTE'})"


def render_print_card(
    vehiculo: Vehiculo,
    url: str,
    marchamo_anio: Optional[int],
    expired: bool,
    color: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> bytes:
    generated_at = generated_at or datetime.now()
    img = Image.new("RGB", (CARD_W, CARD_H), "#ffffff")
    draw = ImageDraw.Draw(img, "RGBA")

    # Header
    draw.text((70, 60), "QR Vehículo", fill="#0f172a", font=_font(52, bold=True))
    draw.text((70, 132), "Escanee para abrir el buscador bloqueado por placa",
              fill="#334155", font=_font(28))

    # Card con sombra y borde
    card_x, card_y = 70, 220
    card_w, card_h = CARD_W - 140, 1250
    draw.rectangle([card_x + 8, card_y + 10, card_x + 8 + card_w, card_y + 10 + card_h],
                   fill=(0, 0, 0, 15))
    draw.rectangle([card_x, card_y, card_x + card_w, card_y + card_h], fill="#ffffff")
    draw.rectangle([card_x + 7, card_y + 7, card_x + card_w - 7, card_y + card_h - 7],
                   outline=border_color(color, expired), width=14)

    # QR centrado
    qr_size = 640
    qr_x = card_x + (card_w - qr_size) // 2
    qr_y = card_y + 80
    qr_img = _make_qr(url, border=1).resize((qr_size, qr_size), Image.Resampling.NEAREST)
    img.paste(qr_img, (qr_x, qr_y))

    # Resumen
    y = qr_y + qr_size + 50
    x = card_x + 60
    draw.text((x, y), vehiculo.placa, fill="#0f172a", font=_font(46, bold=True))
    draw.text((x, y + 70), f"{vehiculo.marca} {vehiculo.modelo} • {vehiculo.anio}",
              fill="#334155", font=_font(34))
    draw.text((x, y + 125), f"Tipo: {vehiculo.tipo or 'N/D'} • Color: {vehiculo.color or 'N/D'}",
              fill="#334155", font=_font(28))
    draw.text((x, y + 175), f"Chasis: {vehiculo.numero_chasis}", fill="#334155", font=_font(28))
    draw.text((x, y + 235), marchamo_label(marchamo_anio, expired),
              fill=COLOR_MAP["red"] if expired else COLOR_MAP["green"], font=_font(34, bold=True))

    # Footer
    draw.text((x, card_y + card_h - 70), f"Generado: {generated_at:%d/%m/%Y %H:%M:%S}",
              fill="#64748b", font=_font(22))

    logger.debug("[QR] hoja imprimible generada placa=%s", vehiculo.placa)
    return _to_png(img)
