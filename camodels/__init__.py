"""Pinhole, Kannala-Brandt and Scaramuzza camera models with calibration and geometry helpers."""

__version__ = "0.1.0"