"""Conversion event pipeline: browser tag plus server-side delivery with retries."""

from .pipeline import ConversionPipeline, DeliveryStats, normalize_identity
from .retry import AttemptOutcome, RetryPolicy, RetryScheduler
from .tag import BrowserTag

__all__ = [
    "AttemptOutcome",
    "BrowserTag",
    "ConversionPipeline",
    "DeliveryStats",
    "RetryPolicy",
    "RetryScheduler",
    "normalize_identity",
]
