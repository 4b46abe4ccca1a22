"""Facilitator reconciliation core.

Ingests loosely ordered bridge events, merges them into canonical records
and publishes change notifications for downstream services.
"""

__version__ = "0.1.0"
