"""
Telephony package.

Keep package import side-effects to a minimum to avoid circular imports.
Do not import factory/adapters here.
"""

__all__ = [
    "callflow",
    "config",
    "exotel_adapter",
    "factory",
    "identifiers",
    "interface",
    "phone_numbers",
    "simulation",
    "twilio_adapter",
]
