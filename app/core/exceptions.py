# app/core/exceptions.py
"""
Error taxonomy for outreach and ledger code paths.

- ValidationError / NoValidRecipients: bad input, surfaced, never retried
- AllSendsFailed: surfaced, the drip cursor is not advanced
- SignatureInvalid: rejected at the webhook boundary, no state change
- DuplicateIdempotentWrite: "already exists" on an at-most-once record,
  always caught by the caller and ignored
- TransientDependencyError: email provider or store unavailable; the sweep
  loop logs it and the next sweep retries
"""
from typing import List, Optional


class OutreachError(Exception):
    """Base class for errors raised by the outreach and ledger services."""

    code = "OUTREACH_ERROR"
    retryable = False

    def __init__(self, message: str, *, code: Optional[str] = None):
        self.message = message
        if code:
            self.code = code
        super().__init__(message)


class ValidationError(OutreachError):
    code = "VALIDATION_ERROR"


class NoValidRecipients(ValidationError):
    code = "NO_VALID_RECIPIENTS"

    def __init__(self, message: str = "No valid recipient emails found."):
        super().__init__(message)


class AllSendsFailed(OutreachError):
    code = "ALL_SENDS_FAILED"

    def __init__(self, failed: List[dict]):
        self.failed = failed
        super().__init__(f"All {len(failed)} selected recipients failed to send.")


class SignatureInvalid(OutreachError):
    code = "SIGNATURE_INVALID"


class DuplicateIdempotentWrite(OutreachError):
    code = "ALREADY_EXISTS"

    def __init__(self, table: str, key: str):
        self.table = table
        self.key = key
        super().__init__(f"{table} record {key} already exists")


class TransientDependencyError(OutreachError):
    code = "TRANSIENT_DEPENDENCY"
    retryable = True
