"""
Structured JSON logging and the security event channel.

Log records may carry member e-mail addresses and identity tokens in their
``extra`` context. Both are masked here before a line is emitted; the audit
log is the only place that keeps them in full.
"""
import json
import logging
import re
import traceback
from datetime import datetime, timezone as dt_timezone
from django.utils import timezone
import sentry_sdk

from apps.core.log_sanitizer import sanitize_text

MASK = '********'


class PIIMasker:
    """Masks e-mail local parts and credential-bearing fields."""

    EMAIL_PATTERN = re.compile(r'([A-Za-z0-9._%+-])([A-Za-z0-9._%+-]*)(@[A-Za-z0-9.-]+\.[A-Za-z]{2,})')

    SENSITIVE_FIELDS = frozenset({
        'authorization', 'cookie', 'token', 'access_token', 'refresh_token',
        'password', 'secret', 'idp_jwt_secret', 'secret_key', 'confirmation_name',
    })

    @classmethod
    def mask_text(cls, text):
        if not isinstance(text, str):
            return text
        text = cls.EMAIL_PATTERN.sub(lambda m: m.group(1) + '*' * len(m.group(2)) + m.group(3), text)
        return sanitize_text(text)

    @classmethod
    def mask_value(cls, value):
        if isinstance(value, dict):
            return cls.mask_dict(value)
        if isinstance(value, (list, tuple)):
            return [cls.mask_value(item) for item in value]
        return cls.mask_text(value)

    @classmethod
    def mask_dict(cls, data):
        """Mask a structured payload, recursing into nested containers."""
        if not isinstance(data, dict):
            return data
        return {
            key: (MASK if value else value) if str(key).lower() in cls.SENSITIVE_FIELDS
            else cls.mask_value(value)
            for key, value in data.items()
        }


# Attributes every LogRecord has; anything else came in through ``extra``.
_STANDARD_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}


class JSONFormatter(logging.Formatter):
    """One JSON object per line with request_id, org_id and masked extras."""

    def format(self, record):
        entry = {
            'timestamp': datetime.now(dt_timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': PIIMasker.mask_text(record.getMessage()),
            'location': f"{record.module}.{record.funcName}:{record.lineno}",
        }

        for key, value in vars(record).items():
            if key in _STANDARD_RECORD_ATTRS or key.startswith('_') or value is None:
                continue
            entry[key] = PIIMasker.mask_value(value)

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            entry['exception'] = {
                'type': exc_type.__name__,
                'message': PIIMasker.mask_text(str(exc_value)),
                'traceback': PIIMasker.mask_text(''.join(traceback.format_exception(exc_type, exc_value, exc_tb))),
            }

        return json.dumps(entry, default=str)


class SecurityLogger:
    """
    Centralized security event logging.

    Every event goes to the ``security`` logger with structured context.
    Critical events are also sent to Sentry for alerting.
    """

    CRITICAL_EVENTS = {
        'ownership_transfer_compensation_failed',
        'audit_write_failed',
        'audit_tamper_attempt',
    }

    @staticmethod
    def log_event(event_type: str, level: str = 'warning', **context):
        """
        Log a security event with structured data.

        Example:
            >>> SecurityLogger.log_event(
            ...     'domain_access_denied',
            ...     domain='admin',
            ...     user_id='123',
            ... )
        """
        logger = logging.getLogger('security')

        log_data = {
            'event_type': event_type,
            'event_at': timezone.now().isoformat(),
        }
        log_data.update(context)
        log_data = PIIMasker.mask_dict(log_data)

        log_method = getattr(logger, level, logger.warning)
        log_method(f"Security event: {event_type}", extra=log_data)

        if event_type in SecurityLogger.CRITICAL_EVENTS:
            sentry_sdk.capture_message(
                f"Critical security event: {event_type}",
                level='error',
            )

    @staticmethod
    def log_domain_denied(domain: str, reason: str, user_id: str = None,
                          path: str = None, ip_address: str = None):
        """Log a request the gate refused for a tenant-facing domain."""
        SecurityLogger.log_event(
            'domain_access_denied',
            level='warning',
            domain=domain,
            reason=reason,
            user_id=user_id,
            path=path,
            ip_address=ip_address,
        )

    @staticmethod
    def log_ops_probe(user_id: str = None, path: str = None, ip_address: str = None):
        """
        Log an ops-domain request from a caller without ops membership.

        The caller only ever sees a 404; this record is the sole trace.
        """
        SecurityLogger.log_event(
            'ops_probe',
            level='warning',
            user_id=user_id,
            path=path,
            ip_address=ip_address,
        )

    @staticmethod
    def log_org_resolution_denied(user_id: str, slug: str, outcome: str):
        """Log a slug that did not resolve, with the real reason kept server-side."""
        SecurityLogger.log_event(
            'org_resolution_denied',
            level='info',
            user_id=user_id,
            slug=slug,
            outcome=outcome,
        )
