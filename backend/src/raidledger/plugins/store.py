"""Persistence for plugin install records and plugin-owned settings.

Every call opens its own short-lived session so concurrent lifecycle
operations never share transactional state.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.exceptions import PluginAlreadyInstalledError
from ..models.app_setting import AppSetting
from ..models.base import utcnow
from ..models.plugin import PluginInstallRecord

logger = logging.getLogger(__name__)


class PluginLifecycleStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, slug: str) -> PluginInstallRecord | None:
        async with self._session_factory() as session:
            res = await session.execute(select(PluginInstallRecord).where(PluginInstallRecord.slug == slug))
            return res.scalars().first()

    async def list_all(self) -> list[PluginInstallRecord]:
        async with self._session_factory() as session:
            res = await session.execute(select(PluginInstallRecord))
            return list(res.scalars().all())

    async def list_active_slugs(self) -> set[str]:
        async with self._session_factory() as session:
            res = await session.execute(
                select(PluginInstallRecord.slug).where(PluginInstallRecord.active.is_(True))
            )
            return {row[0] for row in res.all()}

    async def find_installed(self, slugs: Iterable[str]) -> set[str]:
        """Subset of ``slugs`` that have an install record, in one query."""
        wanted = list(slugs)
        if not wanted:
            return set()
        async with self._session_factory() as session:
            res = await session.execute(
                select(PluginInstallRecord.slug).where(PluginInstallRecord.slug.in_(wanted))
            )
            return {row[0] for row in res.all()}

    async def create(self, slug: str, name: str, version: str, *, active: bool = True) -> PluginInstallRecord:
        now = utcnow()
        record = PluginInstallRecord(
            slug=slug, name=name, version=version, active=active, installed_at=now, updated_at=now
        )
        async with self._session_factory() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError:
                # Lost a concurrent install race on the unique slug
                await session.rollback()
                raise PluginAlreadyInstalledError(slug)
            await session.refresh(record)
            return record

    async def set_active(self, slug: str, active: bool) -> bool:
        """Flip the active flag. Returns False when no record exists."""
        async with self._session_factory() as session:
            res = await session.execute(
                update(PluginInstallRecord)
                .where(PluginInstallRecord.slug == slug)
                .values(active=active, updated_at=utcnow())
            )
            await session.commit()
            return (res.rowcount or 0) > 0

    async def delete(self, slug: str, setting_keys: Iterable[str] = ()) -> None:
        """Delete the record and the plugin's settings in one transaction."""
        keys = list(setting_keys)
        async with self._session_factory() as session:
            async with session.begin():
                if keys:
                    await session.execute(delete(AppSetting).where(AppSetting.key.in_(keys)))
                await session.execute(delete(PluginInstallRecord).where(PluginInstallRecord.slug == slug))
        if keys:
            logger.info("Cleaned up %d setting(s) for plugin '%s'", len(keys), slug)

    async def existing_setting_keys(self, keys: Iterable[str]) -> set[str]:
        """Which of ``keys`` exist in the settings table (existence only, values never read)."""
        wanted = list(dict.fromkeys(keys))
        if not wanted:
            return set()
        async with self._session_factory() as session:
            res = await session.execute(select(AppSetting.key).where(AppSetting.key.in_(wanted)))
            return {row[0] for row in res.all()}

    async def upsert_settings(self, values: dict[str, Any]) -> None:
        if not values:
            return
        async with self._session_factory() as session:
            async with session.begin():
                res = await session.execute(select(AppSetting).where(AppSetting.key.in_(list(values))))
                existing = {row.key: row for row in res.scalars().all()}
                for key, value in values.items():
                    row = existing.get(key)
                    if row is None:
                        session.add(AppSetting(key=key, value=value))
                    else:
                        row.value = value
