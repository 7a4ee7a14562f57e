"""Typed failures raised by the capture, halftone, and thumbnail stages."""

from __future__ import annotations


class InkerError(Exception):
    """Base class for every pipeline failure surfaced to callers."""

    kind = "InkerError"
    retryable = False


class RenderUnavailable(InkerError):
    kind = "RenderUnavailable"


class RenderTimeout(InkerError):
    kind = "RenderTimeout"
    retryable = True


class RenderFailure(InkerError):
    kind = "RenderFailure"
    retryable = True


class DecodeError(InkerError):
    kind = "DecodeError"


class ArtifactWriteError(InkerError, OSError):
    kind = "IOError"
