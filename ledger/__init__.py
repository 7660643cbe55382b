"""
Personal Ledger - Source Package

A personal expense ledger: categorized entries over a swappable backend,
with daily and monthly summaries.

DESIGN PRINCIPLES:
1. The category set is closed
2. Validate before writing, never after
3. The backend owns ids and durable state
4. Summaries are derived, never stored
5. The backend is swappable without touching ledger rules
"""

__version__ = "1.0.0"
__author__ = "Personal Ledger Team"
