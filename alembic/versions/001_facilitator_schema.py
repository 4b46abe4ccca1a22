"""Facilitator schema: messages, anchors, gateways, transactions, requests,
contract entities.

Revision ID: 001_facilitator
Revises: None
Create Date: 2026-10-19 00:00:00.000000
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_facilitator"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Messages
    op.create_table(
        "messages",
        sa.Column("message_hash", sa.String(66), primary_key=True),
        sa.Column("type", sa.String(16), nullable=True),
        sa.Column("direction", sa.String(24), nullable=True),
        sa.Column("gateway_address", sa.String(42), nullable=True),
        sa.Column("source_status", sa.String(24), nullable=False),
        sa.Column("target_status", sa.String(24), nullable=False),
        sa.Column("gas_price", sa.BigInteger, nullable=True),
        sa.Column("gas_limit", sa.BigInteger, nullable=True),
        sa.Column("nonce", sa.BigInteger, nullable=True),
        sa.Column("sender", sa.String(42), nullable=True),
        sa.Column("secret", sa.String(66), nullable=True),
        sa.Column("hash_lock", sa.String(66), nullable=True),
        sa.Column("source_declaration_block_height", sa.BigInteger, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_messages_gateway_nonce", "messages", ["gateway_address", "nonce"])
    op.create_index("ix_messages_source_status", "messages", ["source_status"])
    op.create_index("ix_messages_target_status", "messages", ["target_status"])

    # Anchors
    op.create_table(
        "anchors",
        sa.Column("anchor_ga", sa.String(128), primary_key=True),
        sa.Column("last_anchored_block_number", sa.BigInteger, nullable=False),
        *_timestamps(),
    )

    # Gateways
    op.create_table(
        "gateways",
        sa.Column("gateway_address", sa.String(42), primary_key=True),
        sa.Column("chain", sa.String(16), nullable=True),
        sa.Column("gateway_type", sa.String(16), nullable=True),
        sa.Column("remote_gateway_address", sa.String(42), nullable=True),
        sa.Column("token_address", sa.String(42), nullable=True),
        sa.Column("anchor_address", sa.String(42), nullable=True),
        sa.Column("bounty", sa.Numeric(78, 0), nullable=True),
        sa.Column("activation", sa.Boolean, nullable=True),
        sa.Column("last_remote_gateway_proven_block_height", sa.BigInteger, nullable=True),
        *_timestamps(),
    )

    # Transactions (origin and auxiliary)
    op.create_table(
        "transactions",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("chain", sa.String(16), nullable=False),
        sa.Column("from_address", sa.String(42), nullable=True),
        sa.Column("to_address", sa.String(42), nullable=True),
        sa.Column("encoded_data", sa.Text, nullable=True),
        sa.Column("gas_price", sa.BigInteger, nullable=True),
        sa.Column("gas", sa.BigInteger, nullable=True),
        sa.Column("tx_hash", sa.String(66), nullable=True),
        sa.Column("nonce", sa.BigInteger, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_transactions_chain_tx_hash", "transactions", ["chain", "tx_hash"])

    # Stake / redeem requests
    op.create_table(
        "requests",
        sa.Column("request_hash", sa.String(66), primary_key=True),
        sa.Column("request_type", sa.String(16), nullable=True),
        sa.Column("amount", sa.Numeric(78, 0), nullable=True),
        sa.Column("beneficiary", sa.String(42), nullable=True),
        sa.Column("gas_price", sa.BigInteger, nullable=True),
        sa.Column("gas_limit", sa.BigInteger, nullable=True),
        sa.Column("nonce", sa.BigInteger, nullable=True),
        sa.Column("gateway", sa.String(42), nullable=True),
        sa.Column("sender", sa.String(42), nullable=True),
        sa.Column("sender_proxy", sa.String(42), nullable=True),
        sa.Column("message_hash", sa.String(66), nullable=True, unique=True),
        sa.Column("block_number", sa.BigInteger, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_requests_sender_proxy_nonce", "requests", ["sender_proxy", "nonce"])

    # Upstream timestamp high-water marks
    op.create_table(
        "contract_entities",
        sa.Column("contract_address", sa.String(42), primary_key=True),
        sa.Column("entity_type", sa.String(32), primary_key=True),
        sa.Column("timestamp", sa.BigInteger, nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("contract_entities")
    op.drop_table("requests")
    op.drop_table("transactions")
    op.drop_table("gateways")
    op.drop_table("anchors")
    op.drop_table("messages")
