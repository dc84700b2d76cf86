"""Translation of domain errors into HTTP errors."""

from fastapi import HTTPException, status

from schedule_core.domain.shared.exceptions import DomainError, ErrorType

_STATUS_BY_TYPE = {
    ErrorType.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorType.INVALID_PATTERN: status.HTTP_400_BAD_REQUEST,
    ErrorType.RANGE_TOO_LARGE: status.HTTP_400_BAD_REQUEST,
    ErrorType.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorType.INVALID_SCOPE: status.HTTP_409_CONFLICT,
    ErrorType.TRANSACTION: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorType.REPOSITORY: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_exception(error: DomainError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_TYPE.get(
            error.error_type, status.HTTP_500_INTERNAL_SERVER_ERROR
        ),
        detail=error.to_dict(),
    )
