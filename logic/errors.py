# backend/logic/errors.py
from typing import Dict, List, Optional


class ApiError(Exception):
    """Base error rendered as {"errors": [{"path", "message"}]}."""

    status_code = 500

    def __init__(self, path: str = "server", message: str = "Internal server error",
                 errors: Optional[List[Dict[str, str]]] = None):
        self.errors = errors or [{"path": path, "message": message}]
        super().__init__(self.errors[0]["message"])

    def to_payload(self) -> Dict:
        return {"errors": self.errors}


class ValidationError(ApiError):
    status_code = 400


class AuthError(ApiError):
    status_code = 401

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(path="auth", message=message)
        self.status_code = status_code


class NotFound(ApiError):
    status_code = 404


class StorageError(ApiError):
    status_code = 500

    def __init__(self, message: str = "Database error"):
        super().__init__(path="server", message=message)


class ChatbotError(ApiError):
    status_code = 502

    def __init__(self, message: str = "Failed to get AI response"):
        super().__init__(path="server", message=message)
