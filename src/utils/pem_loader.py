from __future__ import annotations
from pathlib import Path
from typing import Union


def read_pem(pem_data: Union[str, Path, bytes]) -> str:
    """Return PEM text from a file path, raw bytes, or an inline PEM string."""
    if isinstance(pem_data, bytes):
        return pem_data.decode("ascii")

    if isinstance(pem_data, str) and "-----BEGIN" in pem_data:
        return pem_data

    path = Path(pem_data)
    if not path.exists():
        raise FileNotFoundError(f"Key file not found: {pem_data}")
    return path.read_text(encoding="ascii")
