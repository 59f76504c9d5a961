# src/casty/ledger/constants.py
from __future__ import annotations

"""CastyToken monetary and emission constants.

- Metadata: name "CastyToken", symbol "TY", 18 decimals
- Initial supply: 10,000,000,000 TY minted to the deployer
- Emission: every 30 days the owner may mint up to 2% of total supply
"""

TOKEN_NAME: str = "CastyToken"
TOKEN_SYMBOL: str = "TY"

# Monetary precision (1 TY = 1e18 units)
TOKEN_DECIMALS: int = 18
UNIT: int = 10**TOKEN_DECIMALS

INITIAL_SUPPLY_WHOLE: int = 10_000_000_000
INITIAL_SUPPLY: int = INITIAL_SUPPLY_WHOLE * UNIT

# Emission cadence: 30 days between mints
MINT_COOLDOWN_SECONDS: int = 30 * 24 * 60 * 60

# Ceiling per mint: 2/100 of total supply at mint time
MINT_RATE_NUMERATOR: int = 2
MINT_RATE_DENOMINATOR: int = 100

# uint256 bound for balances and supply
MAX_UINT256: int = 2**256 - 1

ZERO_ADDRESS: str = "0x" + "0" * 40
