from __future__ import annotations

from .models.entitlement import DenialCode


class DownloadServiceError(Exception):
    """Base exception for all download-service errors."""


class AccountNotFound(DownloadServiceError):
    """The account id does not resolve to an account row."""

    def __init__(self, account_id: str) -> None:
        super().__init__(f"account not found: {account_id}")
        self.account_id = account_id


class FileNotFound(DownloadServiceError):
    """The file id does not resolve to a resource file row."""

    def __init__(self, file_id: str) -> None:
        super().__init__(f"file not found: {file_id}")
        self.file_id = file_id


class PermissionDenied(DownloadServiceError):
    """Access refused by pricing policy (VIP level, points, quota, inactive file)."""

    def __init__(self, code: DenialCode, reason: str) -> None:
        super().__init__(reason)
        self.code = code
        self.reason = reason


class ConfigurationError(DownloadServiceError):
    """Pricing configuration outside the supported cases. Treated as a denial."""


class PaymentFailure(DownloadServiceError):
    """A charge could not be applied; the whole payment transaction was rolled back."""

    code: DenialCode = DenialCode.PAYMENT_FAILED


class QuotaExhausted(PaymentFailure):
    """No daily quota left when trying to consume one unit."""

    code = DenialCode.QUOTA_EXHAUSTED


class InsufficientBalance(PaymentFailure):
    """Points or legacy credits would go negative."""

    def __init__(self, message: str, code: DenialCode) -> None:
        super().__init__(message)
        self.code = code
