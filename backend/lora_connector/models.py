from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import String, BigInteger, LargeBinary, ForeignKey, DateTime, UniqueConstraint, func, Numeric

class Base(DeclarativeBase):
    pass

class Installation(Base):
    __tablename__ = "installations"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    token: Mapped[str] = mapped_column(String(512), nullable=False)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    instances: Mapped[list["Instance"]] = relationship("Instance", back_populates="installation", cascade="all, delete-orphan", passive_deletes=True)

class Instance(Base):
    __tablename__ = "instances"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    token: Mapped[str] = mapped_column(String(512), nullable=False)
    installation_id: Mapped[str] = mapped_column(String(36), ForeignKey("installations.id", ondelete="CASCADE"), index=True, nullable=False)
    config_thing_id: Mapped[str | None] = mapped_column(String(36), unique=True, index=True, nullable=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    installation: Mapped["Installation"] = relationship("Installation", back_populates="instances")

class IDMapping(Base):
    """Device EUI to platform Thing id, unique per instance."""
    __tablename__ = "id_mappings"
    instance_id: Mapped[str] = mapped_column(String(36), ForeignKey("instances.id", ondelete="CASCADE"), primary_key=True)
    dev_eui: Mapped[bytes] = mapped_column(LargeBinary(8), primary_key=True)
    thing_id: Mapped[str] = mapped_column(String(36), unique=True, index=True, nullable=False)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

class DecoderConfig(Base):
    __tablename__ = "decoder_configs"
    __table_args__ = (UniqueConstraint("instance_id", "application_id", name="uq_decoder_configs_instance_app"),)
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    instance_id: Mapped[str] = mapped_column(String(36), ForeignKey("instances.id", ondelete="CASCADE"), index=True, nullable=False)
    # LoRaWAN application ids are unsigned 64-bit, which BIGINT cannot hold
    application_id: Mapped[int] = mapped_column(Numeric(20, 0), nullable=False)
    decoder_name: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

class DecoderState(Base):
    __tablename__ = "decoder_states"
    thing_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    key: Mapped[str] = mapped_column(String(36), primary_key=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
