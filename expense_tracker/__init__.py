"""
Expense Tracker - Source Package

A small household expense tracker: a step-by-step entry wizard whose
completed expenses are saved locally and mirrored to Google Sheets.

DESIGN PRINCIPLES:
1. One step, one decision - the user can't move on from an incomplete step
2. Fail early, fail visibly
3. No silent corrections
4. The local save is what counts; the mirror is best-effort
5. Every step is auditable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
