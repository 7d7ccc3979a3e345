"""
FocusFlow - storage portability layer for the FocusFlow task and focus-timer service.

Route handlers talk to one uniform, serverless-style relational interface;
SQLite, PostgreSQL and MySQL adapters sit behind it, and canonical
SQLite-dialect migrations are translated for whichever engine is active.
"""

__version__ = "0.1.0"
