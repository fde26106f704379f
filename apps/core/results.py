"""
Uniform result of every externally callable privileged action.

Actions never redirect. They hand back an ActionResult and the caller
(view, CLI, UI) decides where to navigate using ``next_url``.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from apps.core.exceptions import OrgShellException, StorageFailure, ValidationError


@dataclass(frozen=True)
class ActionResult:
    success: bool
    data: Optional[Dict[str, Any]] = None
    next_url: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    field_errors: Dict[str, str] = field(default_factory=dict)
    status_code: int = 200

    @classmethod
    def ok(cls, data=None, next_url=None, status_code=200):
        return cls(success=True, data=data, next_url=next_url, status_code=status_code)

    @classmethod
    def fail(cls, exc: OrgShellException, next_url=None):
        """Build a failure from a taxonomy exception."""
        field_errors = exc.field_errors if isinstance(exc, ValidationError) else {}
        return cls(
            success=False,
            next_url=next_url,
            error=exc.message,
            error_code=exc.code,
            field_errors=dict(field_errors),
            status_code=exc.status_code,
        )

    @classmethod
    def storage_failure(cls):
        return cls.fail(StorageFailure())

    def to_dict(self):
        body = {
            'success': self.success,
            'next_url': self.next_url,
        }
        if self.success:
            body['data'] = self.data or {}
        else:
            body['error'] = {
                'code': self.error_code,
                'message': self.error,
            }
            if self.field_errors:
                body['error']['fields'] = self.field_errors
        return body
