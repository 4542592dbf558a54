"""Derived metrics: health ratios, bot detection and importance scoring."""
