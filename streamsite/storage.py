# streamsite/storage.py
"""
Storage contract shared by the in-memory and SQL backends.

Lookups that find nothing return None (deletes return False). A failing
backend raises StorageError so callers can tell the two apart.
"""
import abc
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from streamsite import audit, config, seed
from streamsite.logger import logger
from streamsite.schemas import (
    AboutMe,
    Announcement,
    AnnouncementCreate,
    AnnouncementUpdate,
    ScheduleItem,
    ScheduleItemCreate,
    ScheduleItemUpdate,
    Setting,
    SocialLink,
    SocialLinkCreate,
    SocialLinkUpdate,
    User,
    UserCreate,
    Video,
    VideoCreate,
    VideoUpdate,
)

WEBHOOK_SETTING = "discordWebhookUrl"


class StorageError(Exception):
    """The backend could not complete the operation."""


class Storage(abc.ABC):

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else config.DISCORD_WEBHOOK_URL
        self.http_transport = http_transport

    # --- Users ---

    @abc.abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]: ...

    @abc.abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abc.abstractmethod
    async def create_user(self, data: UserCreate) -> User: ...

    # --- Announcements ---

    @abc.abstractmethod
    async def list_announcements(self) -> List[Announcement]: ...

    @abc.abstractmethod
    async def list_latest_announcements(self, limit: int) -> List[Announcement]: ...

    @abc.abstractmethod
    async def get_announcement(self, announcement_id: int) -> Optional[Announcement]: ...

    @abc.abstractmethod
    async def create_announcement(self, data: AnnouncementCreate) -> Announcement: ...

    @abc.abstractmethod
    async def update_announcement(self, announcement_id: int, data: AnnouncementUpdate) -> Optional[Announcement]: ...

    @abc.abstractmethod
    async def delete_announcement(self, announcement_id: int) -> bool: ...

    # --- Schedule ---

    @abc.abstractmethod
    async def list_schedule_items(self) -> List[ScheduleItem]: ...

    @abc.abstractmethod
    async def list_schedule_items_by_day(self, day_of_week: int) -> List[ScheduleItem]: ...

    @abc.abstractmethod
    async def get_schedule_item(self, item_id: int) -> Optional[ScheduleItem]: ...

    @abc.abstractmethod
    async def create_schedule_item(self, data: ScheduleItemCreate) -> ScheduleItem: ...

    @abc.abstractmethod
    async def update_schedule_item(self, item_id: int, data: ScheduleItemUpdate) -> Optional[ScheduleItem]: ...

    @abc.abstractmethod
    async def delete_schedule_item(self, item_id: int) -> bool: ...

    # --- Videos ---

    @abc.abstractmethod
    async def list_videos(self) -> List[Video]: ...

    @abc.abstractmethod
    async def list_videos_by_type(self, video_type: str) -> List[Video]: ...

    @abc.abstractmethod
    async def list_latest_videos(self, limit: int) -> List[Video]: ...

    @abc.abstractmethod
    async def get_video(self, video_id: int) -> Optional[Video]: ...

    @abc.abstractmethod
    async def create_video(self, data: VideoCreate) -> Video: ...

    @abc.abstractmethod
    async def update_video(self, video_id: int, data: VideoUpdate) -> Optional[Video]: ...

    @abc.abstractmethod
    async def delete_video(self, video_id: int) -> bool: ...

    # --- About me ---

    @abc.abstractmethod
    async def get_about_me(self) -> Optional[AboutMe]: ...

    @abc.abstractmethod
    async def update_about_me(self, content: str) -> AboutMe: ...

    # --- Social links ---

    @abc.abstractmethod
    async def list_social_links(self) -> List[SocialLink]: ...

    @abc.abstractmethod
    async def list_active_social_links(self) -> List[SocialLink]: ...

    @abc.abstractmethod
    async def get_social_link(self, link_id: int) -> Optional[SocialLink]: ...

    @abc.abstractmethod
    async def create_social_link(self, data: SocialLinkCreate) -> SocialLink: ...

    @abc.abstractmethod
    async def update_social_link(self, link_id: int, data: SocialLinkUpdate) -> Optional[SocialLink]: ...

    @abc.abstractmethod
    async def delete_social_link(self, link_id: int) -> bool: ...

    # --- Settings ---

    @abc.abstractmethod
    async def get_setting(self, key: str) -> Optional[Setting]: ...

    @abc.abstractmethod
    async def set_setting(self, key: str, value: str) -> Setting: ...

    @abc.abstractmethod
    async def list_settings(self) -> List[Setting]: ...

    # --- Audit ---

    async def send_audit_event(self, event: str, data: Any) -> None:
        """Best effort. Failures are logged here and never reach the caller."""
        try:
            setting = await self.get_setting(WEBHOOK_SETTING)
            url = setting.value if setting and setting.value else self.webhook_url
            if not url:
                return
            await audit.post_event(url, event, data, transport=self.http_transport)
        except (httpx.HTTPError, httpx.InvalidURL, StorageError) as exc:
            logger.error("Error sending Discord webhook for %r: %s", event, exc)

    async def close(self) -> None:
        pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _newest_first(records):
    return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)


def _schedule_key(item: ScheduleItem):
    # Day first, then start time, then id. "HH:MM" is zero padded so it sorts as text.
    return (item.day_of_week, item.start_time, item.id)


class MemStorage(Storage):
    """Process-local storage. Seeded with the sample site on construction."""

    def __init__(self, webhook_url=None, http_transport=None, seed_data: bool = True):
        super().__init__(webhook_url, http_transport)
        self._users: Dict[int, User] = {}
        self._announcements: Dict[int, Announcement] = {}
        self._schedule_items: Dict[int, ScheduleItem] = {}
        self._videos: Dict[int, Video] = {}
        self._about_me: Dict[int, AboutMe] = {}
        self._social_links: Dict[int, SocialLink] = {}
        self._settings: Dict[str, Setting] = {}

        self._user_ids = itertools.count(1)
        self._announcement_ids = itertools.count(1)
        self._schedule_item_ids = itertools.count(1)
        self._video_ids = itertools.count(1)
        self._about_me_ids = itertools.count(1)
        self._social_link_ids = itertools.count(1)
        self._setting_ids = itertools.count(1)

        if seed_data:
            self._seed()

    def _seed(self):
        self._add_user(seed.admin_user())
        for announcement in seed.ANNOUNCEMENTS:
            self._add_announcement(announcement)
        for item in seed.SCHEDULE_ITEMS:
            self._add_schedule_item(item)
        for video in seed.VIDEOS:
            self._add_video(video)
        self._put_about_me(seed.ABOUT_ME)
        for link in seed.SOCIAL_LINKS:
            self._add_social_link(link)
        for key, value in seed.SETTINGS.items():
            self._put_setting(key, value)

    # Synchronous writers, shared by seeding and the async API.

    def _add_user(self, data: UserCreate) -> User:
        user = User(id=next(self._user_ids), **data.model_dump())
        self._users[user.id] = user
        return user

    def _add_announcement(self, data: AnnouncementCreate) -> Announcement:
        announcement = Announcement(id=next(self._announcement_ids), created_at=_utcnow(), **data.model_dump())
        self._announcements[announcement.id] = announcement
        return announcement

    def _add_schedule_item(self, data: ScheduleItemCreate) -> ScheduleItem:
        item = ScheduleItem(id=next(self._schedule_item_ids), **data.model_dump())
        self._schedule_items[item.id] = item
        return item

    def _add_video(self, data: VideoCreate) -> Video:
        video = Video(id=next(self._video_ids), created_at=_utcnow(), **data.model_dump())
        self._videos[video.id] = video
        return video

    def _add_social_link(self, data: SocialLinkCreate) -> SocialLink:
        link = SocialLink(id=next(self._social_link_ids), **data.model_dump())
        self._social_links[link.id] = link
        return link

    def _put_about_me(self, content: str) -> AboutMe:
        existing = next(iter(self._about_me.values()), None)
        if existing:
            updated = existing.model_copy(update={"content": content, "updated_at": _utcnow()})
        else:
            updated = AboutMe(id=next(self._about_me_ids), content=content, updated_at=_utcnow())
        self._about_me[updated.id] = updated
        return updated

    def _put_setting(self, key: str, value: str) -> Setting:
        existing = self._settings.get(key)
        if existing:
            setting = existing.model_copy(update={"value": value})
        else:
            setting = Setting(id=next(self._setting_ids), key=key, value=value)
        self._settings[key] = setting
        return setting

    @staticmethod
    def _merge(table: dict, record_id: int, data):
        record = table.get(record_id)
        if record is None:
            return None
        updated = record.model_copy(update=data.changes())
        table[record_id] = updated
        return updated

    # --- Users ---

    async def get_user(self, user_id):
        return self._users.get(user_id)

    async def get_user_by_username(self, username):
        wanted = username.lower()
        return next((u for u in self._users.values() if u.username.lower() == wanted), None)

    async def create_user(self, data):
        return self._add_user(data)

    # --- Announcements ---

    async def list_announcements(self):
        return _newest_first(self._announcements.values())

    async def list_latest_announcements(self, limit):
        return [a for a in await self.list_announcements() if a.published][:limit]

    async def get_announcement(self, announcement_id):
        return self._announcements.get(announcement_id)

    async def create_announcement(self, data):
        return self._add_announcement(data)

    async def update_announcement(self, announcement_id, data):
        return self._merge(self._announcements, announcement_id, data)

    async def delete_announcement(self, announcement_id):
        return self._announcements.pop(announcement_id, None) is not None

    # --- Schedule ---

    async def list_schedule_items(self):
        return sorted(self._schedule_items.values(), key=_schedule_key)

    async def list_schedule_items_by_day(self, day_of_week):
        return [i for i in await self.list_schedule_items() if i.day_of_week == day_of_week]

    async def get_schedule_item(self, item_id):
        return self._schedule_items.get(item_id)

    async def create_schedule_item(self, data):
        return self._add_schedule_item(data)

    async def update_schedule_item(self, item_id, data):
        return self._merge(self._schedule_items, item_id, data)

    async def delete_schedule_item(self, item_id):
        return self._schedule_items.pop(item_id, None) is not None

    # --- Videos ---

    async def list_videos(self):
        return _newest_first(self._videos.values())

    async def list_videos_by_type(self, video_type):
        return [v for v in await self.list_videos() if v.type == video_type and v.published]

    async def list_latest_videos(self, limit):
        return [v for v in await self.list_videos() if v.published][:limit]

    async def get_video(self, video_id):
        return self._videos.get(video_id)

    async def create_video(self, data):
        return self._add_video(data)

    async def update_video(self, video_id, data):
        return self._merge(self._videos, video_id, data)

    async def delete_video(self, video_id):
        return self._videos.pop(video_id, None) is not None

    # --- About me ---

    async def get_about_me(self):
        return next(iter(self._about_me.values()), None)

    async def update_about_me(self, content):
        return self._put_about_me(content)

    # --- Social links ---

    async def list_social_links(self):
        return sorted(self._social_links.values(), key=lambda link: (link.platform.lower(), link.id))

    async def list_active_social_links(self):
        return [link for link in await self.list_social_links() if link.is_active]

    async def get_social_link(self, link_id):
        return self._social_links.get(link_id)

    async def create_social_link(self, data):
        return self._add_social_link(data)

    async def update_social_link(self, link_id, data):
        return self._merge(self._social_links, link_id, data)

    async def delete_social_link(self, link_id):
        return self._social_links.pop(link_id, None) is not None

    # --- Settings ---

    async def get_setting(self, key):
        return self._settings.get(key)

    async def set_setting(self, key, value):
        return self._put_setting(key, value)

    async def list_settings(self):
        return sorted(self._settings.values(), key=lambda s: s.id)
