"""
lmreward Exceptions

Error kinds shared by every component. Each component derives its own
specific errors from one of these, so callers can match either the
component's error or the generic kind.
"""


class LMRewardError(Exception):
    """Base exception for lmreward."""
    pass


# ── Authorization ─────────────────────────────────────────────────────

class UnauthorizedError(LMRewardError):
    """Caller is not allowed to invoke the operation."""
    pass


class NotOwnerError(UnauthorizedError):
    """Owner-only operation invoked by someone else."""

    def __init__(self, message: str = "onlyOwner: caller is not the owner"):
        super().__init__(message)


class NotPendingOwnerError(UnauthorizedError):
    """Ownership accepted by someone other than the pending owner."""
    pass


class CallerIsNotControllerError(UnauthorizedError):
    """Lending hook invoked by an address other than the controller."""
    pass


class CallerIsNotRewardManagerError(UnauthorizedError):
    """Distributor entry point invoked by an address other than its manager."""
    pass


# ── Structural / state ───────────────────────────────────────────────

class AlreadyExistsError(LMRewardError):
    """Item is already registered."""
    pass


class DoesNotExistError(LMRewardError):
    """Item is not registered."""
    pass


class InvalidCapabilityError(LMRewardError):
    """Candidate does not behave as the required kind of component."""
    pass


class SameValueError(LMRewardError):
    """Setting would not change anything."""
    pass


class ZeroAddressError(LMRewardError):
    """The zero address was supplied where a real address is required."""
    pass


class InvalidParameterError(LMRewardError):
    """Malformed or out-of-range parameter."""
    pass


class InvalidAddressError(InvalidParameterError):
    """Value is not a 20-byte hex address."""
    pass


# ── Data validity ────────────────────────────────────────────────────

class InvalidEligibilityError(LMRewardError):
    """An oracle price feeding the eligibility calculation is invalid."""
    pass


# ── Configuration ────────────────────────────────────────────────────

class ConfigError(LMRewardError, ValueError):
    """Configuration file is malformed or inconsistent."""
    pass
