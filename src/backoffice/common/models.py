"""Models module for the app.

This module contains the common database models for the application.
It includes a TimestampMixin class that provides created_at and updated_at
fields for models, a utility function for generating KSUIDs (K-Sortable Unique
IDentifiers) which are exposed as public identifiers, and `today()`, the
calendar date on the same clock the timestamp fields use."""

import datetime

from tortoise import fields, models, timezone
from ksuid import ksuid


def generate_ksuid():
    """Generate a K-Sortable Unique IDentifier (KSUID).

    KSUIDs are time-ordered identifiers that are URL-safe, timestamp prefixed
    and sortable chronologically. Every entity exposes one as `public_id`
    instead of its integer primary key.

    Returns:
        str: A string representation of the generated KSUID.
    """
    return str(ksuid.Ksuid())


def today() -> datetime.date:
    return timezone.now().date()


class TimestampMixin(models.Model):
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        abstract = True
