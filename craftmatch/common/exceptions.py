from fastapi import HTTPException, status


class CraftMatchException(HTTPException):
    """Base error rendered as ``{"error": {"code", "message", "details"?}}``."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_SERVER_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        error: dict = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class UnauthorizedError(CraftMatchException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="UNAUTHORIZED", status_code=status.HTTP_401_UNAUTHORIZED)


class PermissionDeniedError(CraftMatchException):
    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        code: str = "FORBIDDEN",
    ):
        super().__init__(message, code=code, status_code=status.HTTP_403_FORBIDDEN)


class BadRequestError(CraftMatchException):
    def __init__(self, message: str, code: str = "BAD_REQUEST", details: dict[str, str] | None = None):
        super().__init__(message, code=code, status_code=status.HTTP_400_BAD_REQUEST, details=details)
