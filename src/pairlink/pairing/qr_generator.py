"""QR code generation for pairing codes.

The PC displays a QR code encoding ``connect:<code>`` so the phone can join
by scanning instead of typing the code.
"""

import base64
import io

import qrcode
from qrcode.main import QRCode

CONNECT_PREFIX = "connect:"


def connect_uri(code: str) -> str:
    """Text encoded in the QR code for a pairing code."""
    return f"{CONNECT_PREFIX}{code}"


def png_data_url(png: bytes) -> str:
    """Wrap PNG bytes in a ``data:`` URL for direct use in an <img> tag."""
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


class QrGenerator:
    """Generate QR code images."""

    def __init__(self, box_size: int = 10, border: int = 4):
        """Initialize QR generator.

        Args:
            box_size: Pixels per QR module.
            border: Quiet zone width in modules.
        """
        self.box_size = box_size
        self.border = border

    def _create_qr(self, data: str) -> QRCode:
        qr = qrcode.QRCode(
            version=None,  # Auto-size
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(data)
        qr.make(fit=True)
        return qr

    def to_png(self, data: str) -> bytes:
        """Encode ``data`` as a PNG image.

        Args:
            data: Text to encode.

        Returns:
            PNG file bytes.
        """
        qr = self._create_qr(data)
        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()

    def to_terminal(self, data: str) -> str:
        """Render ``data`` as a QR code with Unicode block characters."""
        qr = self._create_qr(data)
        output = io.StringIO()
        qr.print_ascii(out=output, invert=True)
        return output.getvalue()
