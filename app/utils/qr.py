import base64
import io
import secrets
import time
from dataclasses import dataclass

import qrcode
from qrcode.constants import ERROR_CORRECT_H

from app.config import settings
from app.exceptions import InvalidToken


@dataclass(frozen=True)
class QRPayload:
    prefix: str
    order_id: int
    timestamp: int
    nonce: str


def generate_qr_data(order_id: int, prefix: str | None = None) -> str:
    """
    Pickup token: <prefix>-<orderId>-<millis>-<random hex>
    """
    prefix = prefix or settings.QR_PREFIX
    timestamp = int(time.time() * 1000)
    nonce = secrets.token_hex(8)
    return f"{prefix}-{order_id}-{timestamp}-{nonce}"


def parse_qr_data(token: str, prefix: str | None = None) -> QRPayload:
    prefix = prefix or settings.QR_PREFIX

    if not isinstance(token, str):
        raise InvalidToken()

    parts = token.strip().split("-")
    if len(parts) != 4 or parts[0] != prefix:
        raise InvalidToken()

    _, order_id, timestamp, nonce = parts
    if not order_id.isdigit() or not timestamp.isdigit() or not nonce:
        raise InvalidToken()

    return QRPayload(
        prefix=prefix,
        order_id=int(order_id),
        timestamp=int(timestamp),
        nonce=nonce,
    )


def generate_qr_image(data: str) -> str:
    """Render the token as a PNG data URL for the client to display."""
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_H,
        box_size=10,
        border=1,
    )
    qr.add_data(data)
    qr.make(fit=True)

    buffer = io.BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("utf-8")
    return f"data:image/png;base64,{encoded}"
