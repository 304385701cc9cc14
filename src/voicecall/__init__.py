"""Voice call agent: text-to-speech and outbound calls with provider fallback."""

__version__ = "0.1.0"
