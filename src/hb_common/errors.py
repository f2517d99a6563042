"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Request/Tenant
  6xxx: Identifier allocation
  7xxx: Patient
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Request/Tenant ---

class TenantRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "X-Tenant-ID header is required", 400)


# --- 6xxx: Identifier allocation ---
# Recovered inside the allocator; they only reach the API if a caller
# bypasses it.

class StoreUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6001, f"Identifier store unavailable: {detail}", 503)


class UniqueConstraintViolationError(AppError):
    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(6002, f"Identifier already taken: {identifier}", 409)


class IdentifierFormatError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6004, f"Malformed identifier: {detail}", 422)


class SequenceOverflowError(IdentifierFormatError):
    """Per-period capacity exhausted (or a negative sequence was requested)."""

    def __init__(self, sequence: int, width: int) -> None:
        self.sequence = sequence
        self.width = width
        AppError.__init__(
            self,
            6003,
            f"Sequence overflow: {sequence} does not fit in {width} digits",
            422,
        )


# --- 7xxx: Patient ---

class PatientNotFoundError(AppError):
    def __init__(self, patient_id: str) -> None:
        super().__init__(7001, f"Patient not found: {patient_id}", 404)

