"""
Payroll Kernel - staff payroll settlement engine.

A transactional settlement core with:
- Period salary computation with leave deductions
- Two running ledgers per staff (advances, carry-forward)
- Append-only payment record log
- Idempotent, serialized settlements per staff member
"""

__version__ = "0.1.0"
