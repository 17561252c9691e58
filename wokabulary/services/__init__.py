"""
Services Module

Business logic shared by the routers, plus the provider integrations that
follow the hybrid pattern (Mock for development, Real for production).

Services:
    - auth: staff sign-in through the hosted auth provider
    - notifications: bill email and SMS delivery
    - ordering: order pricing, recipe stock consumption, bill numbers
    - billing: bill totals and bill message rendering
    - excel_manager: file-locked Excel sales ledger
"""

from wokabulary.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
