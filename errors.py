# errors.py
"""Error types raised by the Vmachine SOAP adapter."""

from typing import Optional


class VmachineError(Exception):
    """Base class for adapter errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message


class TransportFailure(VmachineError):
    """Network error, timeout or non-2xx HTTP status from the SOAP endpoint."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        body: Optional[bytes] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, cause)
        self.status_code = status_code
        self.reason = reason
        self.body = body

    @property
    def status_text(self) -> Optional[str]:
        if self.status_code is None:
            return None
        return f"HTTP {self.status_code} {self.reason or ''}".rstrip()


class DecodeFailure(VmachineError):
    """Response body is not XML, or carries values that cannot be typed."""


class SoapFault(VmachineError):
    """The remote service answered with a SOAP Fault."""

    def __init__(
        self,
        message: str,
        fault_type: Optional[str] = None,
        fault_string: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.fault_type = fault_type
        self.fault_string = fault_string
        self.status_code = status_code
