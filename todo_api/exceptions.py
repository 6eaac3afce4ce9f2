from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Entity is absent, soft-deleted, or owned by someone else."""

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ForbiddenError(HTTPException):
    """Entity found by raw id but the ownership check failed."""

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class UnexpectedError(HTTPException):
    # Callers log the underlying failure; the client only ever sees this message.
    def __init__(self, detail: str = "Unexpected error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
