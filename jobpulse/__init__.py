"""JobPulse web client."""

from .version import __version__
