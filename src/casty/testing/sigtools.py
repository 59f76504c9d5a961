from __future__ import annotations

import hashlib
from typing import Any, Dict, Tuple

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from casty.crypto.sig import address_from_pubkey, canonical_mint_message, sign_ed25519

Json = Dict[str, Any]


def _seed_for_label(label: str) -> bytes:
    return hashlib.sha256(("casty-test-ed25519:" + (label or "")).encode("utf-8")).digest()


def deterministic_ed25519_keypair(*, label: str) -> Tuple[str, Ed25519PrivateKey]:
    """Deterministically derive an Ed25519 keypair from a stable label.

    TEST ONLY.

    Returns:
      (pubkey_hex, private_key)
    """
    sk = Ed25519PrivateKey.from_private_bytes(_seed_for_label(label))
    pk_hex = sk.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()
    return pk_hex, sk


def address_for_label(label: str) -> str:
    pk_hex, _ = deterministic_ed25519_keypair(label=label)
    return address_from_pubkey(pk_hex)


def signed_mint_request(*, label: str, to: str, amount: int, last_mint_ts: int) -> Json:
    """Build a POST /v1/emission/mint body signed by the key for ``label``."""
    pk_hex, _ = deterministic_ed25519_keypair(label=label)
    msg = canonical_mint_message(to=to, amount=amount, last_mint_ts=last_mint_ts)
    return {
        "to": to,
        "amount": str(int(amount)),
        "pubkey": pk_hex,
        "sig": sign_ed25519(message=msg, privkey=_seed_for_label(label).hex()),
    }
