"""
Budget Core - Source Package

The accounting core of a personal budget: recurring bills and income
materialized per month, reconciled against what was actually paid.

DESIGN PRINCIPLES:
1. Money is integer cents, always
2. Transitions are pure and return new values
3. No silent corrections
4. Every mutation must be auditable
5. "Today" is always passed in, never read
"""

__version__ = "1.0.0"
__author__ = "Budget Core Team"
