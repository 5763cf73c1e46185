import base64
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from admissions.gateways.interfaces import QrRenderer


class PngQrRenderer(QrRenderer):
    """Renders QR codes as base64 PNG data URLs."""

    def __init__(self, box_size: int = 10, border: int = 4) -> None:
        self._box_size = box_size
        self._border = border

    def render(self, payload: str) -> str:
        qr = qrcode.QRCode(
            error_correction=ERROR_CORRECT_M,
            box_size=self._box_size,
            border=self._border,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"
