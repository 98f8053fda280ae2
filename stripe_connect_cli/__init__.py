"""
Stripe Connect CLI

A command-line tool for Stripe Connect platforms:
- Connect accounts: list, search, capabilities, network cost passthrough
- Card imports from CSV into platform or connected accounts
- Customer cleanup with per-customer confirmation
- Test connected accounts with completed KYC/KYB data

API keys are resolved from --key, named platform profiles, the default
profile, or the STRIPE_SECRET_KEY environment variable, in that order.
"""

__version__ = "1.0.0"
__author__ = "Stripe Connect CLI"

from .config import Settings, StaticConfig

__all__ = ["Settings", "StaticConfig"]
