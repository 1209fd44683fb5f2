"""
Expose ORM models for Django's auto-discovery while keeping real definitions
under the infrastructure module.
"""

from marketplace.infra.models import *  # noqa: F401,F403
from marketplace.infra.outbox import OutboxEvent  # noqa: F401
