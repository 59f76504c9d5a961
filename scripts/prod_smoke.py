#!/usr/bin/env python3

"""Production-ish smoke test for the CastyToken API.

It verifies:
  - executor boots on a fresh SQLite db and credits the deployer
  - FastAPI app boots and serves /v1/health, /v1/token, /v1/emission
  - a signed owner mint inside the first window is refused as time-locked
  - a second boot on the same db resumes the persisted snapshot

Usage:
  python3 scripts/prod_smoke.py
"""

from __future__ import annotations

import os
import tempfile

from fastapi.testclient import TestClient

from casty.api.app import create_app
from casty.testing.sigtools import address_for_label, signed_mint_request


def main() -> int:
    owner = address_for_label("smoke-owner")

    # Fresh isolated db
    with tempfile.TemporaryDirectory(prefix="casty-smoke-") as td:
        os.environ["CASTY_DB_PATH"] = os.path.join(td, "casty.db")
        os.environ["CASTY_DEPLOYER"] = owner
        os.environ.setdefault("CASTY_MODE", "dev")
        os.environ.pop("CASTY_TOKEN_CONFIG_PATH", None)

        c = TestClient(create_app(boot_runtime=True))

        r = c.get("/v1/health")
        assert r.status_code == 200, r.text
        assert bool(r.json().get("ok")) is True

        token = c.get("/v1/token").json()
        assert token["symbol"] == "TY", token
        assert token["owner"] == owner, token

        em = c.get("/v1/emission").json()
        assert em["locked"] is True, em

        body = signed_mint_request(label="smoke-owner", to=owner, amount=1, last_mint_ts=int(em["last_mint_ts"]))
        r = c.post("/v1/emission/mint", json=body)
        assert r.status_code == 409, r.text

        # Reboot on the same db: the deployer env is ignored once a snapshot exists.
        os.environ["CASTY_DEPLOYER"] = address_for_label("someone-else")
        c2 = TestClient(create_app(boot_runtime=True))
        token2 = c2.get("/v1/token").json()
        if token2 != token:
            raise RuntimeError(f"snapshot did not survive restart: {token} != {token2}")

        print("OK: health/token/emission + time-locked mint + restart", {"total_supply": token["total_supply"]})
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
