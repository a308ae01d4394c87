"""
Security utilities for the release pipeline.

Provides:
- Validation of revisions, URLs and repository names taken from CI events
- Secrets masking in logs and reports
"""

import re
from typing import Tuple
from urllib.parse import urlparse


class SecurityError(Exception):
    """Raised when an untrusted input fails validation."""
    pass


class InputValidator:
    """
    Validates inputs that arrive from event payloads or the command line
    before they reach a subprocess or an HTTP request.
    """

    # Commit SHA, abbreviated or full
    SHA_PATTERN = re.compile(r'^[0-9a-f]{7,40}$')

    # Branch/tag style refs, optionally with ancestry suffix (e.g. main~1, abc123^)
    REF_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._/-]{0,199}[~^]?[0-9]*$')

    REPOSITORY_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$')

    @staticmethod
    def validate_revision(revision: str) -> str:
        """
        Validate a revision identifier.

        Args:
            revision: Commit SHA or git ref

        Returns:
            The revision, stripped

        Raises:
            SecurityError: If the revision could be interpreted as an option
                or contains characters git refs cannot
        """
        value = (revision or "").strip()
        if not value:
            raise SecurityError("Revision is empty")
        if value.startswith("-"):
            raise SecurityError(f"Revision may not start with '-': {value}")
        if ".." in value:
            raise SecurityError(f"Revision ranges are not allowed: {value}")
        if InputValidator.SHA_PATTERN.match(value) or InputValidator.REF_PATTERN.match(value):
            return value
        raise SecurityError(f"Invalid revision: {value}")

    @staticmethod
    def validate_url(url: str) -> str:
        """
        Validate an http(s) URL.

        Raises:
            SecurityError: If the URL is not absolute http(s)
        """
        parsed = urlparse((url or "").strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise SecurityError(f"Invalid URL: {url}")
        return url.strip()

    @staticmethod
    def validate_repository(full_name: str) -> Tuple[str, str]:
        """
        Validate and split an ``owner/repo`` name.

        Returns:
            Tuple of (owner, repo)
        """
        if not InputValidator.REPOSITORY_PATTERN.match(full_name or ""):
            raise SecurityError(f"Invalid repository name: {full_name}")
        owner, repo = full_name.split("/", 1)
        return owner, repo


class SecretsMasker:
    """
    Masks secrets in logs and output to prevent exposure.
    """

    SECRET_PATTERNS = [
        (re.compile(r'(ghp_[a-zA-Z0-9]{36})'), 'GITHUB_TOKEN'),
        (re.compile(r'(ghs_[a-zA-Z0-9]{36})'), 'GITHUB_APP_TOKEN'),
        (re.compile(r'(gho_[a-zA-Z0-9]{36})'), 'GITHUB_OAUTH_TOKEN'),
        (re.compile(r'(shp(at|ca|pa|ss)_[a-fA-F0-9]{32})'), 'SHOPIFY_TOKEN'),
        (re.compile(r'(xox[baprs]-[a-zA-Z0-9-]+)'), 'SLACK_TOKEN'),
    ]

    # Values registered at runtime (configured tokens) are always masked
    _known_secrets: set = set()

    @classmethod
    def register(cls, secret: str) -> None:
        """Register a secret value that must never appear in output."""
        if secret and len(secret) >= 6:
            cls._known_secrets.add(secret)

    @classmethod
    def mask_secrets(cls, text: str) -> str:
        """
        Mask secrets in text.

        Args:
            text: Text that may contain secrets

        Returns:
            Text with secrets masked
        """
        if not text:
            return text

        masked = text
        for secret in cls._known_secrets:
            masked = masked.replace(secret, "***REDACTED***")

        for pattern, name in cls.SECRET_PATTERNS:
            masked = pattern.sub(f'***{name}***', masked)

        # --token value / TOKEN=value
        masked = re.sub(
            r'(--token|password|token|secret)([\s=:]+)(?!\*\*\*)[^\s]+',
            r'\1\2***REDACTED***',
            masked,
            flags=re.IGNORECASE,
        )

        return masked

    @classmethod
    def mask_dict(cls, data: dict) -> dict:
        """Recursively mask secrets in a dictionary."""
        masked = {}

        for key, value in data.items():
            if any(word in key.lower() for word in ['password', 'token', 'secret']):
                masked[key] = '***REDACTED***' if value else value
            elif isinstance(value, dict):
                masked[key] = cls.mask_dict(value)
            elif isinstance(value, str):
                masked[key] = cls.mask_secrets(value)
            elif isinstance(value, list):
                masked[key] = [
                    cls.mask_dict(item) if isinstance(item, dict)
                    else cls.mask_secrets(item) if isinstance(item, str)
                    else item
                    for item in value
                ]
            else:
                masked[key] = value

        return masked


def mask_secrets(text: str) -> str:
    """Mask secrets in text."""
    return SecretsMasker.mask_secrets(text)
