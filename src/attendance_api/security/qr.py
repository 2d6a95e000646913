from __future__ import annotations

import base64
import io

import qrcode


def png_data_uri(payload: str) -> str:
    """Render `payload` as a QR code PNG embedded in a data: URI."""
    img = qrcode.make(payload)
    buf = io.BytesIO()
    img.save(buf)
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
