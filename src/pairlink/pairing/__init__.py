"""Pairing module for pairlink.

Provides:
- Pairing protocol handler (register, join, logout, relay dispatch)
- QR code generation for pairing codes
"""

from .handler import PairingHandler
from .qr_generator import QrGenerator

__all__ = [
    "PairingHandler",
    "QrGenerator",
]
