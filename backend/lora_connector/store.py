"""Database access for the connector, wrapping one ``AsyncSession``."""

from __future__ import annotations

import hashlib
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import StateNotFoundError
from .models import DecoderConfig, DecoderState, IDMapping, Installation, Instance


def _lock_key(instance_id: str, dev_eui: bytes) -> int:
    digest = hashlib.blake2b(instance_id.encode() + b"/" + dev_eui, digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


class Store:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

    async def rollback(self) -> None:
        await self.session.rollback()

    async def _write(self, stmt) -> None:
        try:
            await self.session.execute(stmt)
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        await self.commit()

    # ---- installations / instances ----

    async def add_installation(self, installation_id: str, token: str) -> None:
        self.session.add(Installation(id=installation_id, token=token))
        await self.commit()

    async def add_instance(self, instance: Instance) -> None:
        """Stage *instance*; the caller commits once the config thing is published."""
        self.session.add(instance)
        try:
            await self.session.flush()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

    async def get_installation(self, installation_id: str) -> Installation | None:
        return await self.session.get(Installation, installation_id)

    async def get_instance(self, instance_id: str) -> Instance | None:
        res = await self.session.execute(select(Instance).where(Instance.id == instance_id))
        return res.scalar_one_or_none()

    async def instance_for_config_thing(self, thing_id: str) -> Instance | None:
        res = await self.session.execute(select(Instance).where(Instance.config_thing_id == thing_id))
        return res.scalar_one_or_none()

    # ---- decoder bindings ----

    async def decoder_name_for_app(self, instance_id: str, application_id: int) -> str | None:
        stmt = select(DecoderConfig.decoder_name).where(
            DecoderConfig.instance_id == instance_id,
            DecoderConfig.application_id == application_id,
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def add_decoder_binding(self, instance_id: str, application_id: int, decoder_name: str) -> None:
        self.session.add(DecoderConfig(instance_id=instance_id, application_id=application_id, decoder_name=decoder_name))
        await self.commit()

    # ---- device identity ----

    async def thing_id_for_eui(self, instance_id: str, dev_eui: bytes) -> str | None:
        stmt = select(IDMapping.thing_id).where(IDMapping.instance_id == instance_id, IDMapping.dev_eui == dev_eui)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def store_eui_mapping(self, instance_id: str, dev_eui: bytes, thing_id: str) -> None:
        """Stage a mapping; it is committed when the surrounding device lock is released."""
        self.session.add(IDMapping(instance_id=instance_id, dev_eui=dev_eui, thing_id=thing_id))
        await self.session.flush()

    async def thing_is_mapped(self, thing_id: str) -> bool:
        stmt = select(IDMapping.thing_id).where(IDMapping.thing_id == thing_id)
        return (await self.session.execute(stmt)).first() is not None

    @asynccontextmanager
    async def device_lock(self, instance_id: str, dev_eui: bytes) -> AsyncIterator[None]:
        """Serialize provisioning of one device with a transaction-scoped advisory lock."""
        await self.session.execute(select(func.pg_advisory_xact_lock(_lock_key(instance_id, dev_eui))))
        try:
            yield
        except BaseException:
            await self.session.rollback()
            raise
        await self.commit()

    # ---- decoder state ----

    async def get_state(self, thing_id: str, key: str) -> bytes:
        stmt = select(DecoderState.value).where(DecoderState.thing_id == thing_id, DecoderState.key == key)
        value = (await self.session.execute(stmt)).scalar_one_or_none()
        if value is None:
            raise StateNotFoundError(thing_id, key)
        return value

    async def set_state(self, thing_id: str, key: str, value: bytes) -> None:
        stmt = insert(DecoderState).values(thing_id=thing_id, key=key, value=value)
        stmt = stmt.on_conflict_do_update(
            index_elements=[DecoderState.thing_id, DecoderState.key],
            set_={"value": stmt.excluded.value, "updated_at": func.now()},
        )
        await self._write(stmt)

    async def init_state(self, thing_id: str, key: str, value: bytes) -> bytes:
        """Insert *value* unless an entry exists, then return whatever is stored."""
        stmt = insert(DecoderState).values(thing_id=thing_id, key=key, value=value)
        stmt = stmt.on_conflict_do_nothing(index_elements=[DecoderState.thing_id, DecoderState.key])
        await self._write(stmt)
        return await self.get_state(thing_id, key)
