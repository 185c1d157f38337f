class InvestmentError(Exception):
    """Base class for accrual engine errors."""


class InvalidRate(InvestmentError, ValueError):
    pass


class InvalidPrincipal(InvestmentError, ValueError):
    pass


class InvestmentRejected(InvestmentError, ValueError):
    """Activation refused by plan or account limits."""


class InvestmentNotActive(InvestmentError):
    pass


class WalletCreditFailed(InvestmentError, RuntimeError):
    """The wallet could not be credited; the settlement must not commit."""


class StaleInvestmentState(InvestmentError):
    """An effect was computed from a snapshot that no longer matches the stored row."""


class InsufficientBalance(InvestmentRejected):
    """The wallet cannot cover the amount being invested."""
