"""
CDP Module - Chrome DevTools Protocol connection, correlation, events and targets.
"""
from chrome_capture.cdp.connection import CDPConnection, setup_logging
from chrome_capture.cdp.correlator import CommandCorrelator, PendingCommand
from chrome_capture.cdp.events import EventRouter
from chrome_capture.cdp.targets import Target, TargetRegistry

__all__ = [
    "CDPConnection",
    "setup_logging",
    "CommandCorrelator",
    "PendingCommand",
    "EventRouter",
    "Target",
    "TargetRegistry",
]
