"""
Abstract base for every orgshell table.
"""
import uuid
from django.db import models


class BaseModel(models.Model):
    """
    Opaque UUID primary key plus creation and modification timestamps.

    Ids are exposed in URLs and audit payloads, so they must never be
    sequential or guessable.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['-created_at']
