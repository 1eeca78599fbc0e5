class PositionSnapshotError(RuntimeError):
    """Base error for a failed position snapshot run."""


class ContractUnavailableError(PositionSnapshotError):
    """A required contract handle could not be constructed."""


class RpcError(PositionSnapshotError):
    """The node answered with a JSON-RPC error (revert, bad params, ...)."""


class DecodeError(PositionSnapshotError):
    """A return payload did not match the expected ABI shape."""
