import base64
import io
import urllib.parse

import qrcode


def png_bytes(data: str) -> bytes:
    img = qrcode.make(data)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def data_url(data: str) -> str:
    """PNG QR code as a data: URL, ready for an <img src>."""
    return "data:image/png;base64," + base64.b64encode(png_bytes(data)).decode("ascii")


def lookup_url(base: str, record_id: str) -> str:
    return base.rstrip("/") + "/qr/" + urllib.parse.quote(record_id)
