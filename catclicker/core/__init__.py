"""Core game rules (cost curves, accrual, commands, formatting).

Kept free of FastAPI and Redis concerns so it can be reused by API routes, scripts, and tests.
"""
