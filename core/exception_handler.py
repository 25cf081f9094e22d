"""
DRF exception handler translating domain errors into HTTP responses.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import (
    SalesError,
    NotFound,
    OutOfStock,
    CartAlreadyPurchased,
    CartNotPurchased,
    InvalidCredential,
    InvalidArgument,
    TransientError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (OutOfStock, status.HTTP_409_CONFLICT),
    (CartAlreadyPurchased, status.HTTP_409_CONFLICT),
    (CartNotPurchased, status.HTTP_409_CONFLICT),
    (InvalidCredential, status.HTTP_401_UNAUTHORIZED),
    (InvalidArgument, status.HTTP_400_BAD_REQUEST),
    (TransientError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: SalesError) -> int:
    for error_class, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def sales_exception_handler(exc, context):
    """
    Handle SalesError subclasses, defer everything else to DRF.

    Configured via REST_FRAMEWORK['EXCEPTION_HANDLER'].
    """
    if isinstance(exc, SalesError):
        status_code = status_for(exc)
        view = context.get('view')
        logger.warning(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc}"
        )
        headers = {'Retry-After': '1'} if isinstance(exc, TransientError) else None
        return Response(exc.as_dict(), status=status_code, headers=headers)

    return exception_handler(exc, context)
