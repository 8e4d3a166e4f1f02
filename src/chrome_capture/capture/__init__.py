"""
Capture Module - Session archive, DOM digest and artifact writing.
"""
from chrome_capture.capture.session import CaptureSession, sanitize_label
from chrome_capture.capture.summary import DomSummarizer, summary_from_result
from chrome_capture.capture.writer import CaptureArtifactWriter

__all__ = [
    "CaptureSession",
    "sanitize_label",
    "DomSummarizer",
    "summary_from_result",
    "CaptureArtifactWriter",
]
