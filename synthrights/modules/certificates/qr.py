"""QR codes pointing at a certificate's verification URL."""

import base64
import io

import qrcode  # type: ignore[import-untyped]
from PIL import Image
from qrcode.image.pil import PilImage  # type: ignore[import-untyped]


def render_qr_png(url: str, size: int = 240) -> bytes:
    """Render ``url`` as a square black-on-white PNG."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(url)
    qr.make(fit=True)

    img = qr.make_image(image_factory=PilImage, fill_color="black", back_color="white")
    resized = img.resize((size, size), Image.Resampling.NEAREST)

    buffer = io.BytesIO()
    resized.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def qr_data_uri(url: str, size: int = 240) -> str:
    encoded = base64.b64encode(render_qr_png(url, size)).decode("ascii")
    return f"data:image/png;base64,{encoded}"
