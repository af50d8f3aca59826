"""Archer DAO relay endpoints and tip tiers."""

import enum

#: Where do we hit our requests
ARCHER_DEFAULT_API_URL = "https://api.archerdao.io"

#: Signed transaction submission endpoint
ARCHER_TRANSACTION_PATH = "v1/transaction"

#: Miner tip quote endpoint
ARCHER_GAS_PATH = "v1/gas"

#: JSON-RPC method name the relay expects in submissions
ARCHER_SUBMIT_METHOD = "archer_submitTx"


class ArcherTipSpeed(enum.Enum):
    """Tip tiers quoted by the relay, fastest first."""

    immediate = "immediate"
    rapid = "rapid"
    fast = "fast"
    standard = "standard"
    slow = "slow"
    slower = "slower"
    slowest = "slowest"

    @classmethod
    def parse(cls, value: "str | ArcherTipSpeed") -> "ArcherTipSpeed":
        """Map a tier name to a tier.

        Unknown names fall back to :py:attr:`standard`.
        """
        if isinstance(value, ArcherTipSpeed):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.standard
