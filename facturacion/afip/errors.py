"""Common base for AFIP integration errors."""


class AFIPError(RuntimeError):
    """Base class for every failure raised by the AFIP helpers."""


__all__ = ["AFIPError"]
