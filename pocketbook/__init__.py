"""
Pocketbook - Source Package

Backend for a personal and shared finance application: monthly budgets
per category, period summaries, and seat management for shared
subscriptions.

DESIGN PRINCIPLES:
1. Money is Decimal, never float
2. Computations are pure; storage is swappable
3. Expected business outcomes (no seats, no subscription) are results, not exceptions
4. Every significant action is auditable
"""

__version__ = "1.0.0"
__author__ = "Pocketbook Team"
