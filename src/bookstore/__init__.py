"""
Bookstore backend services.

Subscription plans, the subscription ledger and the Redis-backed login
session store, exposed through a FastAPI application.
"""

__version__ = "1.0.0"
