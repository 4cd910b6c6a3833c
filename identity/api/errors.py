"""Translate service Failure values into HTTP errors."""

from fastapi import HTTPException, status

from identity.services.results import Failure, FailureKind

STATUS_BY_KIND = {
    FailureKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    FailureKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    FailureKind.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    FailureKind.DUPLICATE_USERNAME: status.HTTP_409_CONFLICT,
    FailureKind.DUPLICATE_EMAIL: status.HTTP_409_CONFLICT,
    FailureKind.ROLE_EXISTS: status.HTTP_409_CONFLICT,
    FailureKind.ROLE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.ALREADY_IN_ROLE: status.HTTP_409_CONFLICT,
    FailureKind.NOT_IN_ROLE: status.HTTP_400_BAD_REQUEST,
    FailureKind.INVALID_RESET_TOKEN: status.HTTP_400_BAD_REQUEST,
    FailureKind.PASSWORD_MISMATCH: status.HTTP_400_BAD_REQUEST,
}


def http_error(failure: Failure) -> HTTPException:
    """HTTPException for a Failure; validation failures carry the field-keyed error map."""
    status_code = STATUS_BY_KIND.get(failure.kind, status.HTTP_400_BAD_REQUEST)
    if failure.kind is FailureKind.VALIDATION:
        detail: object = {"message": failure.message, "errors": failure.errors}
    else:
        detail = failure.message
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=status_code, detail=detail, headers=headers)
