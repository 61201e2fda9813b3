class ServiceError(Exception):
    """Base exception for all service-layer errors."""

    error_type: str | None = None

    def __init__(self, detail: str, status_code: int = 500):
        self.detail = detail
        self.status_code = status_code
        super().__init__(self.detail)


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail, status_code=404)


class BadRequestError(ServiceError):
    """Raised for invalid client requests (e.g., bad input)."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(detail, status_code=400)


class UnauthorizedError(ServiceError):
    """Raised when the caller could not be authenticated."""

    def __init__(self, detail: str = "You must be logged in to do this."):
        super().__init__(detail, status_code=401)


class ForbiddenError(ServiceError):
    """Raised when the authenticated caller lacks a required permission."""

    error_type = "error-unauthorized"

    def __init__(
        self,
        detail: str = "User does not have the permissions required for this action",
    ):
        super().__init__(detail, status_code=403)


class AppNotFoundError(NotFoundError):
    """No App is installed under the given id."""

    def __init__(self, app_id: str):
        self.app_id = app_id
        super().__init__(f"No App found by the id of: {app_id}")


class SettingNotFoundError(NotFoundError):
    """The App exists but declares no setting with the given id."""

    def __init__(self, app_id: str, setting_id: str):
        self.app_id = app_id
        self.setting_id = setting_id
        super().__init__(
            f'No Setting found on the App by the id of: "{setting_id}"'
        )


class AppAlreadyExistsError(BadRequestError):
    def __init__(self, app_id: str):
        self.app_id = app_id
        super().__init__(f"An App with the id of {app_id} is already installed.")


class InvalidAppStatusError(BadRequestError):
    def __init__(self, status: str):
        self.status = status
        super().__init__(
            f'Invalid status "{status}" to change an App to, '
            "must be manually disabled or enabled."
        )


class InvalidFieldError(BadRequestError):
    """An uploaded file arrived under an unexpected form field."""

    error_type = "invalid-field"

    def __init__(self, expected: str, received: str):
        self.expected = expected
        self.received = received
        super().__init__(
            f'Expected the field "{expected}" but got "{received}" instead.'
        )


class PackageTooLargeError(ServiceError):
    def __init__(self, limit_bytes: int):
        self.limit_bytes = limit_bytes
        super().__init__(
            f"The uploaded App package exceeds the limit of {limit_bytes} bytes.",
            status_code=413,
        )


class PackageFetchError(ServiceError):
    """Transport-level failure while downloading an App package."""

    def __init__(self, detail: str = "Failed to download the App package."):
        super().__init__(detail, status_code=502)


class LengthRequiredError(ServiceError):
    """Uploads must announce their size before the body is parsed."""

    def __init__(
        self, detail: str = "A Content-Length header is required to upload an App."
    ):
        super().__init__(detail, status_code=411)
