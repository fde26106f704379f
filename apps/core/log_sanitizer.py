"""
Credential redaction for log output.

Identity-provider access tokens reach this service in the Authorization
header and in the provider's session cookie. Neither may appear in a log
line, whether it arrives through the message, its args or a formatted
traceback.
"""
import re
import logging

REDACTED = '[REDACTED]'

REDACTIONS = (
    # Authorization: Bearer <token>
    (re.compile(r'(Bearer\s+)[A-Za-z0-9_\-\.=]{8,}', re.IGNORECASE), r'\1' + REDACTED),
    # Bare JWTs anywhere in the text
    (re.compile(r'eyJ[A-Za-z0-9_\-]+\.eyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]*'), '[REDACTED_JWT]'),
    # Cookie headers, including the provider's sb-*-token cookies
    (re.compile(r'((?:sb-[a-z0-9-]*token|csrftoken)=)[^;\s,]+', re.IGNORECASE), r'\1' + REDACTED),
    # key=value / "key": "value" secrets
    (re.compile(
        r'((?:access_token|refresh_token|password|secret|api_key)["\']?\s*[:=]\s*["\']?)[^\s,;"\'}\]]+',
        re.IGNORECASE,
    ), r'\1' + REDACTED),
    # Credentials embedded in connection URLs
    (re.compile(r'(://[^:/@\s]+:)[^@\s]+@'), r'\1' + REDACTED + '@'),
)


def sanitize_text(text):
    if not isinstance(text, str):
        return text
    for pattern, replacement in REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


class SanitizingFormatter(logging.Formatter):
    """Formatter that redacts the fully rendered line, traceback included."""

    def format(self, record):
        return sanitize_text(super().format(record))


class SanitizingFilter(logging.Filter):
    """Redact the message and string args before any handler formats them."""

    def filter(self, record):
        record.msg = sanitize_text(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(sanitize_text(arg) for arg in record.args)
        return True
