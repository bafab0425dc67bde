"""Media processing applied before storage."""

from .transcoder import TranscodeResult, maybe_transcode, needs_transcode

__all__ = ["TranscodeResult", "maybe_transcode", "needs_transcode"]
