"""Command handlers for the App Store Connect CLI."""

from .apps import AppCommands
from .builds import BuildCommands
from .testflight import TestFlightCommands
from .provisioning import ProvisioningCommands
from .auth import AuthCommands
from .raw import RawCommands

__all__ = [
    "AppCommands", "BuildCommands", "TestFlightCommands",
    "ProvisioningCommands", "AuthCommands", "RawCommands",
]
