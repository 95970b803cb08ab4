"""Geração local do QR Code PIX quando o provedor não envia a imagem."""

import base64
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_M


def pix_qr_data_url(pix_code: str) -> str:
    """PNG do código copia e cola, como data URL."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=1)
    qr.add_data(pix_code)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
