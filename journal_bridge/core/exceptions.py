from typing import Optional, Dict, Any
from fastapi import status


class AppException(Exception):
    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(AppException):
    def __init__(self, message: str = "Authentication failed", code: str = "AUTH_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code, status.HTTP_401_UNAUTHORIZED, details)


class InvalidCredentialsError(AuthenticationError):
    def __init__(self):
        super().__init__("Invalid username or password", "INVALID_CREDENTIALS")


class ExternalCommandError(AppException):
    pass


class EnumerationError(ExternalCommandError):
    def __init__(self, command: str, message: str):
        super().__init__(
            f"Listing via '{command}' failed: {message}",
            "ENUMERATION_ERROR",
            status.HTTP_502_BAD_GATEWAY,
            {"command": command}
        )


class LaunchError(ExternalCommandError):
    def __init__(self, command: str, message: str):
        super().__init__(
            f"Failed to start '{command}': {message}",
            "LAUNCH_ERROR",
            status.HTTP_502_BAD_GATEWAY,
            {"command": command}
        )


class StreamError(AppException):
    pass


class StreamIOError(StreamError):
    def __init__(self, message: str = "Log stream I/O failed"):
        super().__init__(message, "STREAM_IO_ERROR", status.HTTP_502_BAD_GATEWAY)


class ProcessExitError(StreamError):
    def __init__(self, returncode: int, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"Log process exited with status {returncode}",
            "PROCESS_EXIT_ERROR",
            status.HTTP_502_BAD_GATEWAY,
            {"returncode": returncode, "stderr": stderr}
        )


class ProcessTimeoutError(StreamError):
    def __init__(self, pid: int, timeout: float):
        super().__init__(
            f"Process {pid} did not exit within {timeout}s of SIGTERM",
            "PROCESS_TIMEOUT",
            status.HTTP_504_GATEWAY_TIMEOUT,
            {"pid": pid, "timeout": timeout}
        )
