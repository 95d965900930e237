"""Recurring booking lifecycle and tiered pricing engine"""

__version__ = "1.0.0"
