"""
TripSync - Ledger & Voting Core

The money and decision engines behind group trip planning: who owes
whom after shared expenses, and which proposal the group picked.

DESIGN PRINCIPLES:
1. Reducers are pure: snapshots in, results out
2. Fail early, fail visibly
3. No silent corrections
4. Every write and every rejection is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "TripSync Team"
