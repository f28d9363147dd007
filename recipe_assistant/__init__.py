"""
Recipe Assistant - a hands-free, context-aware cooking assistant.
"""

__version__ = "1.0.0"
