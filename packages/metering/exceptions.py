from common.core.exceptions import AppException


class ReconciliationInProgressError(AppException):
    """Another reconciliation pass holds this tenant's lock."""

    pass
