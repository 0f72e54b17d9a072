"""Shared utilities used across features."""

from app.shared.channels import CHANNELS, canonical_channel, normalize_key
from app.shared.models import ProvenanceMixin, TimestampMixin
from app.shared.periods import comparison_range, resolve_period_range

__all__ = [
    "CHANNELS",
    "ProvenanceMixin",
    "TimestampMixin",
    "canonical_channel",
    "comparison_range",
    "normalize_key",
    "resolve_period_range",
]
