"""Exception hierarchy for fatal funding conditions."""


class FundingError(Exception):
    """Base class for conditions that abort a funding run."""


class ConfigurationError(FundingError):
    """Required configuration is missing or malformed."""


class NodeNotReadyError(FundingError):
    """The RPC node did not answer within the readiness window."""


class KeystoreError(FundingError):
    """A keystore file could not be read or decrypted."""


class InvalidAddressError(FundingError, ValueError):
    """An address is not a structurally valid chain address."""


class AddressMismatchError(FundingError):
    """The loaded wallet is not the account the configuration expects."""


class InsufficientBalanceError(FundingError):
    """The funding account cannot cover the requested amounts plus gas."""


class EmptyFundingDataError(FundingError):
    """Neither the CSV file nor the wallet directory produced any target."""


class PermissionCheckError(FundingError):
    """The funding account is not the fee sponsor registered on the bridge."""


class BridgeFundingError(FundingError):
    """A bridge funding step failed."""


class RpcError(FundingError):
    """A node request failed while checking run preconditions."""


class NeoRpcError(FundingError):
    """A Neo N3 JSON-RPC request failed or returned an error."""


class ContractInvocationError(NeoRpcError):
    """A Neo N3 contract invocation did not HALT or returned nothing."""

    def __init__(self, message: str, exception: str | None = None) -> None:
        super().__init__(message if exception is None else f"{message}: {exception}")
        self.exception = exception
