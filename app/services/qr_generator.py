"""QR Code generation utility."""
import base64
import io

import qrcode

from app.core.config import get_settings


def _build_qr(payload: str, box_size: int = None, border: int = None) -> qrcode.QRCode:
    settings = get_settings()
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size or settings.qr_box_size,
        border=border if border is not None else settings.qr_border,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    return qr


def render_qr_png(payload: str, box_size: int = None, border: int = None) -> bytes:
    """Render ``payload`` into a PNG and return its bytes."""
    qr = _build_qr(payload, box_size=box_size, border=border)
    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    buffer.seek(0)
    return buffer.getvalue()


def save_qr_png(payload: str, filepath: str) -> None:
    qr = _build_qr(payload)
    img = qr.make_image(fill_color="black", back_color="white")
    img.save(filepath)


def to_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
