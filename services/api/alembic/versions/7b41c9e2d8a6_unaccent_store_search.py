"""unaccent_store_search

Rebuilds the store search index on accent-folded text so "cafe" finds
"Café de Flore" (and the reverse).

Revision ID: 7b41c9e2d8a6
Revises: 3e8d5a1f7c20
Create Date: 2026-10-20
"""

from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = "7b41c9e2d8a6"
down_revision: Union[str, Sequence[str], None] = "3e8d5a1f7c20"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS unaccent")
    # unaccent() is STABLE; index expressions need an IMMUTABLE wrapper.
    # Must match storefinder.stores.postgres.UNACCENT_FUNCTION_DDL
    op.execute(
        """
        CREATE OR REPLACE FUNCTION immutable_unaccent(text) RETURNS text
        LANGUAGE sql IMMUTABLE PARALLEL SAFE STRICT
        AS $$ SELECT public.unaccent('public.unaccent'::regdictionary, $1) $$
        """
    )

    # Must match storefinder.models.store.search_document()
    op.drop_index("ix_stores_search_document", table_name="stores")
    op.execute(
        """
        CREATE INDEX ix_stores_search_document ON stores USING gin (
            setweight(to_tsvector('english'::regconfig, immutable_unaccent(coalesce(name, ''))), 'A')
            || setweight(to_tsvector('english'::regconfig, immutable_unaccent(coalesce(description, ''))), 'B')
        )
        """
    )


def downgrade() -> None:
    op.drop_index("ix_stores_search_document", table_name="stores")
    op.execute(
        """
        CREATE INDEX ix_stores_search_document ON stores USING gin (
            setweight(to_tsvector('english'::regconfig, coalesce(name, '')), 'A')
            || setweight(to_tsvector('english'::regconfig, coalesce(description, '')), 'B')
        )
        """
    )
    op.execute("DROP FUNCTION IF EXISTS immutable_unaccent(text)")
