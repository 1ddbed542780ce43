"""Base exceptions for pairlink."""


class PairlinkError(Exception):
    """Base exception for all pairlink errors."""

    pass


class ProtocolError(PairlinkError):
    """Inbound payload is not a valid message envelope."""

    pass


class PairingError(PairlinkError):
    """Pairing operation violated a binding rule."""

    pass


class RegistryFullError(PairingError):
    """No unused pairing code could be found."""

    pass
