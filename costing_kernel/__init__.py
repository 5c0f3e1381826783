"""
Costing Kernel

Shared infrastructure for the project cost tracking modules:
- SQLAlchemy declarative base and engine/session management
- Structured JSON logging
- Typed exception hierarchy
- Injectable clock and Decimal rounding helpers
"""

__version__ = "0.1.0"
