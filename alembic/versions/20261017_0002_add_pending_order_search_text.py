"""add pending order search text

Revision ID: 20261017_0002
Revises: 20261017_0001
Create Date: 2026-10-17 15:30:00.000000
"""

import json
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261017_0002"
down_revision: Union[str, None] = "20261017_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Frozen copy of the searchable keys at the time of this revision.
SEARCHABLE_ADDRESS_KEYS = ("firstName", "lastName", "email", "place", "street", "zipCode", "country", "company")


def _search_text(addresses) -> str:
    if isinstance(addresses, str):
        addresses = json.loads(addresses)
    return "\n".join(
        str(address[key]).strip().lower()
        for address in addresses or []
        for key in SEARCHABLE_ADDRESS_KEYS
        if address.get(key) not in (None, "")
    )


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if "pending_orders" not in inspector.get_table_names():
        return

    existing_columns = {col["name"] for col in inspector.get_columns("pending_orders")}
    if "search_text" in existing_columns:
        return

    op.add_column(
        "pending_orders",
        sa.Column("search_text", sa.Text(), nullable=False, server_default=""),
    )
    rows = bind.execute(sa.text("SELECT id, shipping_address_requests FROM pending_orders")).all()
    for order_id, addresses in rows:
        bind.execute(
            sa.text("UPDATE pending_orders SET search_text = :search_text WHERE id = :id"),
            {"id": order_id, "search_text": _search_text(addresses)},
        )


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if "pending_orders" not in inspector.get_table_names():
        return

    existing_columns = {col["name"] for col in inspector.get_columns("pending_orders")}
    if "search_text" in existing_columns:
        op.drop_column("pending_orders", "search_text")
