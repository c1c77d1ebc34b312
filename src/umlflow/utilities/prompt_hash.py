"""Stable prompt fingerprints used to correlate model calls in logs."""

from __future__ import annotations

import hashlib
import unicodedata


def prompt_fingerprint(prompt: str, system: str | None = None, length: int = 12) -> str:
    """Return a short sha256 digest over the NFC-normalized system and user prompt."""
    parts = [system or "", prompt]
    normalized = "\x1e".join(
        unicodedata.normalize("NFC", part.strip()) for part in parts
    )
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:length]
