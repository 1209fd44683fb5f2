"""
Per-user cart locks using PostgreSQL advisory locks.
"""
from contextlib import contextmanager
from uuid import UUID

from django.db import connection, transaction


@contextmanager
def cart_lock(user_id: UUID):
    """
    Serialize cart operations of one user for the rest of the transaction.

    A row lock cannot be used here because the cart is created lazily and
    may not exist yet. The lock is transaction-scoped, so this must be
    entered inside ``transaction.atomic()``.

    Usage:
        with transaction.atomic(), cart_lock(user_id):
            # Mutate the cart
            pass
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("cart_lock() must be used inside transaction.atomic()")

    # SQLite runs with transaction_mode=IMMEDIATE, so every transaction
    # already holds the database write lock from BEGIN
    if connection.vendor == "postgresql":
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT pg_advisory_xact_lock(hashtext(%s)::bigint)",
                [f"cart:{user_id}"],
            )
    # Released automatically when the transaction ends
    yield
