"""
Payroll Kernel

Shared foundation for the salary structure system:
- Structured JSON logging with request-scoped context
- Typed exceptions with machine-readable codes
- Decimal-only amount helpers with a single rounding function
- SQLAlchemy declarative base and session management
"""

__version__ = "0.1.0"
