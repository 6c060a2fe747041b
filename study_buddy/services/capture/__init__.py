"""
Capture module - interface to the local audio capture device.
"""

from .base import BaseCaptureDevice

__all__ = ["BaseCaptureDevice"]
