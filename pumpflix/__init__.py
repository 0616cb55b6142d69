"""PumpFlix - multi-tenant workflow automation platform."""

__version__ = "0.1.0"
