from __future__ import annotations

from fastapi import APIRouter, Request, Response

from casty.api.errors import ApiError, api_error_from_receipt
from casty.api.schemas import EmissionStatus, MintRequest, TokenInfo
from casty.crypto.sig import address_from_pubkey, canonical_mint_message, verify_ed25519_signature
from casty.ledger.types import as_uint256, normalize_address
from casty.runtime import metrics

router = APIRouter()


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


@router.get("/health")
def health():
    return {"ok": True}


@router.get("/token", response_model=TokenInfo)
def token_info(request: Request):
    view = _executor(request).view()
    return TokenInfo(
        name=view.name,
        symbol=view.symbol,
        decimals=view.decimals,
        total_supply=str(view.total_supply),
        owner=view.owner,
    )


@router.get("/token/balances/{account}")
def token_balance(account: str, request: Request):
    addr = normalize_address(account)
    if addr is None:
        raise ApiError.bad_request("invalid_address", "account must be 0x + 40 hex chars", {"account": account})
    return {"ok": True, "account": addr, "balance": str(_executor(request).balance_of(addr))}


@router.get("/emission", response_model=EmissionStatus)
def emission_status(request: Request):
    st = _executor(request).emission_status()
    st["mintable_amount"] = str(st["mintable_amount"])
    return EmissionStatus(**st)


@router.post("/emission/mint")
def emission_mint(body: MintRequest, request: Request):
    """Owner-only mint.

    The caller is the address derived from ``pubkey``. The signature must
    cover (to, amount, current last_mint_ts); it is therefore single-use.
    """
    ex = _executor(request)

    try:
        caller = address_from_pubkey(body.pubkey)
    except ValueError:
        raise ApiError.bad_request("invalid_pubkey", "pubkey must be a 32-byte Ed25519 key", {})

    request.state.mint_caller = caller

    amount = as_uint256(body.amount)
    if amount is None:
        raise ApiError.bad_request("invalid_amount", "amount must be a uint256 decimal string", {})
    msg = canonical_mint_message(to=body.to, amount=amount, last_mint_ts=ex.last_mint_ts())
    if not verify_ed25519_signature(message=msg, sig=body.sig, pubkey=body.pubkey):
        raise ApiError.forbidden("invalid_signature", "signature does not match mint request", {"caller": caller})

    receipt = ex.mint(caller, body.to, amount)
    if not receipt.get("ok"):
        raise api_error_from_receipt(receipt)

    return {
        "ok": True,
        "to": receipt["to"],
        "amount": str(receipt["amount"]),
        "total_supply": str(receipt["total_supply"]),
        "last_mint_ts": int(receipt["last_mint_ts"]),
    }


@router.get("/metrics")
def metrics_view(format: str = "json"):
    """Counters/gauges. Disabled unless CASTY_METRICS_ENABLED=1."""
    if not metrics.metrics_enabled():
        return Response(status_code=404, content="not_found\n", media_type="text/plain")
    if format == "prom":
        return Response(content=metrics.format_prometheus(), media_type="text/plain")
    return {"ok": True, "metrics": metrics.snapshot()}
