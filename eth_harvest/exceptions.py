"""Error classes raised by the harvest pipeline.

All errors share :py:class:`HarvestError` as a base, so a scheduler
running many harvests can catch one class, log it and carry on
with the next vault.

A vault with nothing to harvest is not an error.
See :py:attr:`eth_harvest.harvest.HarvestOutcome.skipped`.
"""


class HarvestError(Exception):
    """Base class for harvest pipeline failures."""


class ConfigurationError(HarvestError):
    """Missing or malformed configuration.

    Raised before any network call is made.
    """


class SigningFailure(ConfigurationError):
    """We do not have a usable private key for the active network."""


class PathResolutionFailure(HarvestError):
    """Could not construct a swap path between the tokens."""


class GasEstimationFailure(HarvestError):
    """The node refused to estimate gas for the harvest call.

    Usually the simulated call reverted.
    """


class RelayUnavailable(HarvestError):
    """The relay did not give us a usable reply."""


class DeadlineExpired(HarvestError):
    """The transaction deadline has already passed.

    The transaction is rejected locally and never sent to the relay.
    """


class InvalidHarvestAmount(HarvestError, ValueError):
    """The amount given does not fit the vault's token decimals."""


class TransactionSigningFailure(HarvestError):
    """eth_account refused to sign a transaction we built.

    Usually gas fields that do not match what the chain wants.
    """
