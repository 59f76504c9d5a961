# src/casty/crypto/sig.py
from __future__ import annotations

import base64
import hashlib
import json
from typing import Any, Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

Json = Dict[str, Any]


def _decode_bytes(s: str) -> bytes:
    s = s.strip()
    if not s:
        raise ValueError("empty string")
    # hex
    try:
        return bytes.fromhex(s)
    except ValueError:
        pass
    # base64 / base64url
    try:
        padding = "=" * (-len(s) % 4)
        s2 = (s + padding).replace("-", "+").replace("_", "/")
        return base64.b64decode(s2, validate=True)
    except Exception as e:
        raise ValueError("not hex or base64") from e


def address_from_pubkey(pubkey: str) -> str:
    """Derive the account address for an Ed25519 public key.

    address = "0x" + last 20 bytes of sha256(raw 32-byte pubkey), lowercase hex.
    """
    pk_b = _decode_bytes(pubkey)
    if len(pk_b) != 32:
        raise ValueError("ed25519 pubkey must be 32 bytes")
    return "0x" + hashlib.sha256(pk_b).hexdigest()[-40:]


def canonical_mint_message(*, to: str, amount: int, last_mint_ts: int) -> bytes:
    """Bytes the owner signs to authorize a mint.

    Binding last_mint_ts makes a signature single-use: once any mint commits,
    the checkpoint moves and the old signature no longer verifies.
    """
    obj: Json = {
        "action": "MINT",
        "to": str(to).strip().lower(),
        "amount": str(int(amount)),
        "last_mint_ts": int(last_mint_ts),
    }
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def verify_ed25519_signature(*, message: bytes, sig: str, pubkey: str) -> bool:
    try:
        sig_b = _decode_bytes(sig)
        pk_b = _decode_bytes(pubkey)
        key = Ed25519PublicKey.from_public_bytes(pk_b)
        key.verify(sig_b, message)
        return True
    except (InvalidSignature, ValueError):
        return False


def sign_ed25519(*, message: bytes, privkey: str, encoding: str = "hex") -> str:
    """Sign a message with an Ed25519 private key.

    privkey: hex or base64/base64url string of the 32-byte seed.
    encoding: "hex" (default) or "b64".
    """
    pk_b = _decode_bytes(privkey)
    if len(pk_b) != 32:
        raise ValueError("ed25519 privkey must be a 32-byte seed")

    key = Ed25519PrivateKey.from_private_bytes(pk_b)
    sig_b = key.sign(message)
    if encoding == "hex":
        return sig_b.hex()
    if encoding in {"b64", "base64"}:
        return base64.b64encode(sig_b).decode("ascii")
    raise ValueError("unsupported encoding")
