"""
Error types raised by the template store.

A missing template is not an error: loading an unknown issuer key
returns an empty list. Everything below means learned data could not be
read or written and must reach the caller.
"""

from typing import Optional


class TemplateStoreError(Exception):
    """Base class for template store failures."""


class TemplateDecodeError(TemplateStoreError):
    """A stored template blob is not a readable template document."""

    def __init__(self, message: str, issuer_key: Optional[str] = None):
        self.issuer_key = issuer_key
        if issuer_key is not None:
            message = f"{message} (issuer key '{issuer_key}')"
        super().__init__(message)


class TemplateBackendError(TemplateStoreError):
    """The underlying key-value backend failed to read or write."""
