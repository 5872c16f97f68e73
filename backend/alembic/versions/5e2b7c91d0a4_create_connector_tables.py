"""create connector tables"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5e2b7c91d0a4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "installations",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("token", sa.String(length=512), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "instances",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("token", sa.String(length=512), nullable=False),
        sa.Column(
            "installation_id",
            sa.String(length=36),
            sa.ForeignKey("installations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("config_thing_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(op.f("ix_instances_installation_id"), "instances", ["installation_id"], unique=False)
    op.create_index(op.f("ix_instances_config_thing_id"), "instances", ["config_thing_id"], unique=True)

    op.create_table(
        "id_mappings",
        sa.Column(
            "instance_id",
            sa.String(length=36),
            sa.ForeignKey("instances.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("dev_eui", sa.LargeBinary(length=8), primary_key=True),
        sa.Column("thing_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(op.f("ix_id_mappings_thing_id"), "id_mappings", ["thing_id"], unique=True)

    op.create_table(
        "decoder_configs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "instance_id",
            sa.String(length=36),
            sa.ForeignKey("instances.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("application_id", sa.Numeric(20, 0), nullable=False),
        sa.Column("decoder_name", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("instance_id", "application_id", name="uq_decoder_configs_instance_app"),
    )
    op.create_index(op.f("ix_decoder_configs_instance_id"), "decoder_configs", ["instance_id"], unique=False)

    op.create_table(
        "decoder_states",
        sa.Column("thing_id", sa.String(length=36), primary_key=True),
        sa.Column("key", sa.String(length=36), primary_key=True),
        sa.Column("value", sa.LargeBinary(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("decoder_states")
    op.drop_index(op.f("ix_decoder_configs_instance_id"), table_name="decoder_configs")
    op.drop_table("decoder_configs")
    op.drop_index(op.f("ix_id_mappings_thing_id"), table_name="id_mappings")
    op.drop_table("id_mappings")
    op.drop_index(op.f("ix_instances_config_thing_id"), table_name="instances")
    op.drop_index(op.f("ix_instances_installation_id"), table_name="instances")
    op.drop_table("instances")
    op.drop_table("installations")
