# streamsite/crud.py
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.future import select

from streamsite import models, schemas
from streamsite.database import Base, make_engine, make_session_factory
from streamsite.storage import Storage, StorageError


def _record(schema, row):
    if row is None:
        return None
    return schema.model_validate({c.key: getattr(row, c.key) for c in row.__table__.columns})


class DbStorage(Storage):
    """SQL storage over an async SQLAlchemy engine. One table per record type."""

    def __init__(self, engine: AsyncEngine, webhook_url=None, http_transport=None):
        super().__init__(webhook_url, http_transport)
        self.engine = engine
        self.async_session = make_session_factory(engine)

    @classmethod
    def from_url(cls, url: str, echo: bool = False, **kwargs) -> "DbStorage":
        # A malformed URL or a missing dialect driver fails here, before any connection.
        try:
            engine = make_engine(url, echo=echo)
        except (SQLAlchemyError, ImportError) as exc:
            raise StorageError(f"Cannot create engine: {exc}") from exc
        return cls(engine, **kwargs)

    @asynccontextmanager
    async def session(self):
        try:
            async with self.async_session() as db:
                yield db
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(str(exc)) from exc

    async def create_tables(self):
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(str(exc)) from exc

    async def close(self):
        await self.engine.dispose()

    # Generic helpers, one query shape per operation.

    async def _all(self, schema, query):
        async with self.session() as db:
            result = await db.execute(query)
            return [_record(schema, row) for row in result.scalars().all()]

    async def _get(self, schema, model, record_id):
        async with self.session() as db:
            result = await db.execute(select(model).where(model.id == record_id))
            return _record(schema, result.scalars().first())

    async def _create(self, schema, model, data):
        async with self.session() as db:
            row = model(**data.model_dump())
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return _record(schema, row)

    async def _update(self, schema, model, record_id, data):
        async with self.session() as db:
            result = await db.execute(select(model).where(model.id == record_id))
            row = result.scalars().first()
            if not row:
                return None
            for key, val in data.changes().items():
                setattr(row, key, val)
            await db.commit()
            await db.refresh(row)
            return _record(schema, row)

    async def _delete(self, model, record_id):
        async with self.session() as db:
            result = await db.execute(select(model).where(model.id == record_id))
            row = result.scalars().first()
            if not row:
                return False
            await db.delete(row)
            await db.commit()
            return True

    # --- Users ---

    async def get_user(self, user_id):
        return await self._get(schemas.User, models.User, user_id)

    async def get_user_by_username(self, username):
        query = (
            select(models.User)
            .where(func.lower(models.User.username) == username.lower())
            .order_by(models.User.id)
        )
        users = await self._all(schemas.User, query)
        return users[0] if users else None

    async def create_user(self, data):
        return await self._create(schemas.User, models.User, data)

    # --- Announcements ---

    def _announcements(self):
        return select(models.Announcement).order_by(
            models.Announcement.created_at.desc(), models.Announcement.id.desc()
        )

    async def list_announcements(self):
        return await self._all(schemas.Announcement, self._announcements())

    async def list_latest_announcements(self, limit):
        query = self._announcements().where(models.Announcement.published.is_(True)).limit(limit)
        return await self._all(schemas.Announcement, query)

    async def get_announcement(self, announcement_id):
        return await self._get(schemas.Announcement, models.Announcement, announcement_id)

    async def create_announcement(self, data):
        return await self._create(schemas.Announcement, models.Announcement, data)

    async def update_announcement(self, announcement_id, data):
        return await self._update(schemas.Announcement, models.Announcement, announcement_id, data)

    async def delete_announcement(self, announcement_id):
        return await self._delete(models.Announcement, announcement_id)

    # --- Schedule ---

    def _schedule(self):
        return select(models.ScheduleItem).order_by(
            models.ScheduleItem.day_of_week, models.ScheduleItem.start_time, models.ScheduleItem.id
        )

    async def list_schedule_items(self):
        return await self._all(schemas.ScheduleItem, self._schedule())

    async def list_schedule_items_by_day(self, day_of_week):
        query = self._schedule().where(models.ScheduleItem.day_of_week == day_of_week)
        return await self._all(schemas.ScheduleItem, query)

    async def get_schedule_item(self, item_id):
        return await self._get(schemas.ScheduleItem, models.ScheduleItem, item_id)

    async def create_schedule_item(self, data):
        return await self._create(schemas.ScheduleItem, models.ScheduleItem, data)

    async def update_schedule_item(self, item_id, data):
        return await self._update(schemas.ScheduleItem, models.ScheduleItem, item_id, data)

    async def delete_schedule_item(self, item_id):
        return await self._delete(models.ScheduleItem, item_id)

    # --- Videos ---

    def _videos(self):
        return select(models.Video).order_by(models.Video.created_at.desc(), models.Video.id.desc())

    async def list_videos(self):
        return await self._all(schemas.Video, self._videos())

    async def list_videos_by_type(self, video_type):
        query = self._videos().where(models.Video.type == video_type, models.Video.published.is_(True))
        return await self._all(schemas.Video, query)

    async def list_latest_videos(self, limit):
        query = self._videos().where(models.Video.published.is_(True)).limit(limit)
        return await self._all(schemas.Video, query)

    async def get_video(self, video_id):
        return await self._get(schemas.Video, models.Video, video_id)

    async def create_video(self, data):
        return await self._create(schemas.Video, models.Video, data)

    async def update_video(self, video_id, data):
        return await self._update(schemas.Video, models.Video, video_id, data)

    async def delete_video(self, video_id):
        return await self._delete(models.Video, video_id)

    # --- About me ---

    async def get_about_me(self):
        async with self.session() as db:
            result = await db.execute(select(models.AboutMe).order_by(models.AboutMe.id).limit(1))
            return _record(schemas.AboutMe, result.scalars().first())

    async def update_about_me(self, content):
        # Read, then update or insert. Not atomic; see DESIGN.md.
        async with self.session() as db:
            result = await db.execute(select(models.AboutMe).order_by(models.AboutMe.id).limit(1))
            row = result.scalars().first()
            if row:
                row.content = content
                row.updated_at = datetime.now(timezone.utc)
            else:
                row = models.AboutMe(content=content)
                db.add(row)
            await db.commit()
            await db.refresh(row)
            return _record(schemas.AboutMe, row)

    # --- Social links ---

    def _social_links(self):
        return select(models.SocialLink).order_by(func.lower(models.SocialLink.platform), models.SocialLink.id)

    async def list_social_links(self):
        return await self._all(schemas.SocialLink, self._social_links())

    async def list_active_social_links(self):
        query = self._social_links().where(models.SocialLink.is_active.is_(True))
        return await self._all(schemas.SocialLink, query)

    async def get_social_link(self, link_id):
        return await self._get(schemas.SocialLink, models.SocialLink, link_id)

    async def create_social_link(self, data):
        return await self._create(schemas.SocialLink, models.SocialLink, data)

    async def update_social_link(self, link_id, data):
        return await self._update(schemas.SocialLink, models.SocialLink, link_id, data)

    async def delete_social_link(self, link_id):
        return await self._delete(models.SocialLink, link_id)

    # --- Settings ---

    async def get_setting(self, key):
        async with self.session() as db:
            result = await db.execute(select(models.Setting).where(models.Setting.key == key))
            return _record(schemas.Setting, result.scalars().first())

    async def set_setting(self, key, value):
        # Read, then update or insert. Not atomic; see DESIGN.md.
        async with self.session() as db:
            result = await db.execute(select(models.Setting).where(models.Setting.key == key))
            row = result.scalars().first()
            if row:
                row.value = value
            else:
                row = models.Setting(key=key, value=value)
                db.add(row)
            await db.commit()
            await db.refresh(row)
            return _record(schemas.Setting, row)

    async def list_settings(self):
        return await self._all(schemas.Setting, select(models.Setting).order_by(models.Setting.id))
