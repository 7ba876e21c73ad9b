class AppError(Exception):
    def __init__(self, message: str, status_code: int, errors: list | None = None):
        """
        Custom exception class for application errors.

        Args:
            message (str): The error message.
            status_code (int): The HTTP status code associated with the error.
            errors (list): Optional field-level messages (validation failures).
        """
        super().__init__(message)

        self.status_code = status_code
        self.status = "fail" if str(status_code).startswith("4") else "error"
        self.errors = errors or []
        self.is_operational = True

    def to_json(self) -> dict:
        body = {
            "success": False,
            "status": self.status,
            "message": str(self),
        }
        if self.errors:
            body["errors"] = self.errors
        return body
