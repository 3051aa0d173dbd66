"""age encryption of stored documents using pyrage."""

from __future__ import annotations

import json
from typing import Any

import pyrage
import pyrage.x25519


class DocumentCipher:
    """Encrypts JSON documents to one age recipient and decrypts with its identity.

    Keys are parsed once; a missing identity leaves the cipher write-only.
    """

    def __init__(self, recipient_key: str, identity_key: str = "") -> None:
        if not recipient_key:
            msg = "No age recipient configured (AGE_RECIPIENT)"
            raise ValueError(msg)
        self._recipient = pyrage.x25519.Recipient.from_str(recipient_key)
        self._identity = pyrage.x25519.Identity.from_str(identity_key) if identity_key else None

    def encrypt(self, document: dict[str, Any]) -> bytes:
        plaintext = json.dumps(document, ensure_ascii=False, default=str).encode("utf-8")
        result: bytes = pyrage.encrypt(plaintext, [self._recipient])
        return result

    def decrypt(self, ciphertext: bytes) -> dict[str, Any]:
        if self._identity is None:
            msg = "No age identity configured; cannot decrypt"
            raise ValueError(msg)
        plaintext: bytes = pyrage.decrypt(ciphertext, [self._identity])
        document: Any = json.loads(plaintext.decode("utf-8"))
        if not isinstance(document, dict):
            msg = f"Stored document is {type(document).__name__}, expected object"
            raise ValueError(msg)
        return document
