"""
Call placement across telephony providers.
"""
