"""Exception taxonomy for the budget estimator."""


class MoneyMapError(Exception):
    """Base class for estimator errors."""


class InvalidRequest(MoneyMapError, ValueError):
    """Raised when a budget request is malformed; no strategy is attempted."""


class UpstreamMiss(MoneyMapError):
    """A strategy's upstream call failed or returned unusable content.

    Only used between strategies and the orchestrator; callers never see it.
    """


class IntegrationError(MoneyMapError, RuntimeError):
    """Raised when an integration is misconfigured or unavailable."""
