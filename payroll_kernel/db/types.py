"""
Module: payroll_kernel.db.types
Responsibility: Shared column types for payroll tables, so every ORM model
    declares amounts, percentages and codes identically.
Architecture position: Kernel > DB.  May be imported by ORM modules.

Invariants enforced:
    No floats in storage.  Amounts use Numeric(38, 9); statutory percentages
    use Numeric(9, 4).  Rounding is NOT done here -- callers delegate to
    ``payroll_kernel.domain.amounts.round_money``.
"""

from sqlalchemy import JSON, Numeric, String

# Monthly salary amount, 38 digits total, 9 decimal places
Amount = Numeric(38, 9, asdecimal=True)

# Statutory percentage such as 12.0000 or 0.7500
Percentage = Numeric(9, 4, asdecimal=True)

# Short identifier strings (rate types, system codes, short names)
ShortCode = String(50)

# Display names
Name = String(200)

# Long text for remarks
LongText = String(4000)

# Flag mappings and rule snapshots
Document = JSON()
