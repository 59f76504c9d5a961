from __future__ import annotations

import os
import threading
import time
from typing import Any, Dict


_lock = threading.Lock()
_counters: Dict[str, int] = {}
_gauges: Dict[str, int] = {}
_started_ms = int(time.time() * 1000)


def metrics_enabled() -> bool:
    v = (os.environ.get("CASTY_METRICS_ENABLED") or "").strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def inc_counter(name: str, value: int = 1) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _lock:
        _counters[n] = int(_counters.get(n, 0)) + int(value)


def set_gauge(name: str, value: int) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _lock:
        _gauges[n] = int(value)


def reset() -> None:
    """Clear all counters and gauges (tests)."""
    with _lock:
        _counters.clear()
        _gauges.clear()


def record_mint_receipt(receipt: Dict[str, Any], *, unit: int) -> None:
    """Update emission counters/gauges from an executor mint receipt."""
    if receipt.get("ok"):
        inc_counter("mint_applied_total")
        set_gauge("total_supply_whole", int(receipt.get("total_supply") or 0) // max(1, int(unit)))
        set_gauge("last_mint_ts", int(receipt.get("last_mint_ts") or 0))
        return
    inc_counter("mint_rejected_total")
    reason = str(receipt.get("error") or "").strip()
    if reason:
        inc_counter(f"mint_rejected_{reason}_total")


def snapshot() -> dict:
    now_ms = int(time.time() * 1000)
    with _lock:
        return {
            "ts_ms": now_ms,
            "started_ms": int(_started_ms),
            "uptime_ms": now_ms - int(_started_ms),
            "counters": dict(_counters),
            "gauges": dict(_gauges),
        }


def format_prometheus(prefix: str = "casty_") -> str:
    """Prometheus exposition text, integer counters/gauges only."""
    pre = str(prefix or "").strip() or "casty_"
    snap = snapshot()
    lines: list[str] = [f"{pre}uptime_ms {int(snap['uptime_ms'])}"]

    for kind in ("counters", "gauges"):
        values = snap[kind]
        for name in sorted(values):
            lines.append(f"{pre}{name} {int(values[name])}")

    return "\n".join(lines) + "\n"
