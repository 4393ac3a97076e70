"""Helpers to load the AFIP certificate and private key material.

The certificate and key are read from disk on demand. When an
``encryption_key`` is configured the files are expected to be stored
encrypted with Fernet and are decrypted in memory before use.

Results are cached per (path, key) pair to avoid repeated I/O and
decryption costs; ``refresh_cached_secrets`` drops the cache after a
certificate rotation.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Callable, Optional

from cryptography.fernet import Fernet, InvalidToken

from .errors import AFIPError


class SecretsError(AFIPError):
    """Generic error retrieving AFIP key material."""


@dataclass(frozen=True)
class CredentialFiles:
    """In-memory contents of the certificate and private key files."""

    certificate_bytes: bytes
    private_key_bytes: bytes
    password: Optional[str] = None


def _default_decrypt(cipher_bytes: bytes, key: str) -> bytes:
    """Decrypt bytes using Fernet (AES-128 in CBC)."""

    try:
        return Fernet(key.encode("utf-8")).decrypt(cipher_bytes)
    except (InvalidToken, ValueError) as exc:
        raise SecretsError("No se pudo descifrar el archivo con la clave configurada") from exc


def _read_file(path: str) -> bytes:
    try:
        with open(path, "rb") as fh:
            return fh.read()
    except FileNotFoundError as exc:
        raise SecretsError(f"El archivo no existe: {path}") from exc
    except OSError as exc:
        raise SecretsError(f"No se pudo leer el archivo {path}: {exc}") from exc


def read_secret_file(
    path: str,
    *,
    encryption_key: Optional[str] = None,
    decrypt_callback: Optional[Callable[[bytes, str], bytes]] = None,
) -> bytes:
    content = _read_file(path)
    if not encryption_key:
        return content
    decrypt_fn = decrypt_callback or _default_decrypt
    return decrypt_fn(content, encryption_key)


@functools.lru_cache(maxsize=8)
def load_credential_files(
    certificate_path: str,
    private_key_path: str,
    *,
    password: Optional[str] = None,
    encryption_key: Optional[str] = None,
) -> CredentialFiles:
    """Return certificate and key bytes, caching the result."""

    if not certificate_path or not private_key_path:
        raise SecretsError("Se requieren las rutas del certificado y la clave privada")

    return CredentialFiles(
        certificate_bytes=read_secret_file(certificate_path, encryption_key=encryption_key),
        private_key_bytes=read_secret_file(private_key_path, encryption_key=encryption_key),
        password=password,
    )


def refresh_cached_secrets() -> None:
    """Invalidate the LRU cache to force reloading key material."""

    load_credential_files.cache_clear()


__all__ = [
    "CredentialFiles",
    "SecretsError",
    "load_credential_files",
    "read_secret_file",
    "refresh_cached_secrets",
]
