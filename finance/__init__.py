"""
Finance Tracker - Source Package

A monthly personal-finance tracker: income, fixed and variable
expenses, investments, credit cards and the balance rule that ties
them to a base monthly income.

DESIGN PRINCIPLES:
1. The backend owns the data (storage, auth, row-level security)
2. Aggregations are plain reductions over the month's rows
3. Every write is audited
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
