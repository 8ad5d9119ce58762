"""Normalization module for FLEETGUARD."""

from fleetguard.normalization.methods import clamp, clamp01, inverse_rescale, linear_rescale

__all__ = [
    "clamp",
    "clamp01",
    "inverse_rescale",
    "linear_rescale",
]
