"""
Custom Exceptions

This module defines the error kinds raised by the shortening core.
Each kind maps to one distinct condition surfaced to the HTTP layer,
so clients can tell "pick another alias" from "URL rejected".

Benefits:
- More specific error types for different failure scenarios
- Stable error codes for API consumers
- Registry infrastructure errors stay outside this hierarchy
"""

from typing import Optional


class URLShortenerException(Exception):
    """Base exception for URL shortener service."""
    code = "INTERNAL_ERROR"
    status_code = 500


class InvalidURLError(URLShortenerException):
    """Raised when URL syntax validation fails."""
    code = "INVALID_URL"
    status_code = 400

    def __init__(self, url: str, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(reason)


class UnsafeURLError(URLShortenerException):
    """Raised when the SSRF guard rejects the URL host."""
    code = "URL_NOT_ALLOWED"
    status_code = 403

    def __init__(self, url: str):
        self.url = url
        super().__init__("URL is not allowed (security restriction)")


class InvalidAliasError(URLShortenerException):
    """Raised when a custom alias fails format rules."""
    code = "INVALID_ALIAS"
    status_code = 400

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(
            "Invalid custom alias format. Use 3-50 letters, digits or single hyphens, "
            "starting and ending with a letter or digit"
        )


class AliasTakenError(URLShortenerException):
    """Raised when a custom alias is already in use (including retired codes)."""
    code = "ALIAS_TAKEN"
    status_code = 409

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(f"Custom alias '{alias}' already taken")


class GenerationExhaustedError(URLShortenerException):
    """Raised when random generation cannot find a free code."""
    code = "GENERATION_EXHAUSTED"
    status_code = 500

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Failed to generate unique short code after {attempts} attempts")


class DuplicateShortCodeError(URLShortenerException):
    """Raised by the registry when the unique short code constraint is violated."""
    code = "CODE_COLLISION"
    status_code = 409

    def __init__(self, short_code: str, original_error: Optional[Exception] = None):
        self.short_code = short_code
        self.original_error = original_error
        super().__init__("Short code collision, please retry")


class ShortCodeNotFoundError(URLShortenerException):
    """Raised when a short code does not resolve (missing, deleted or expired)."""
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__("Short URL not found or has expired")


class InvalidCharacterError(URLShortenerException, ValueError):
    """Raised when decoding a string that contains a symbol outside the alphabet."""
    code = "INVALID_CHARACTER"
    status_code = 400

    def __init__(self, char: str):
        self.char = char
        super().__init__(f"Invalid character in short code: {char!r}")


class InvalidExpiryError(URLShortenerException):
    """Raised when a requested expiry is not in the future."""
    code = "INVALID_EXPIRY"
    status_code = 400

    def __init__(self, reason: str = "Expiry must be in the future"):
        super().__init__(reason)


class LinkNotFoundError(URLShortenerException):
    """Raised when a link id does not exist."""
    code = "LINK_NOT_FOUND"
    status_code = 404

    def __init__(self, link_id: str):
        self.link_id = link_id
        super().__init__("Link not found")


class LinkOwnershipError(URLShortenerException):
    """Raised when a caller manages a link it does not own."""
    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, link_id: str):
        self.link_id = link_id
        super().__init__("You do not have access to this link")
