# streamsite/seed.py
"""
Sample content for a fresh site.

    python -m streamsite.seed

creates the tables in DATABASE_URL and fills empty collections. The in-memory
backend loads the same records on construction.
"""
import asyncio

from streamsite import config
from streamsite.logger import logger
from streamsite.schemas import (
    AnnouncementCreate,
    ScheduleItemCreate,
    SocialLinkCreate,
    UserCreate,
    VideoCreate,
)


def admin_user() -> UserCreate:
    return UserCreate(username=config.ADMIN_USERNAME, password=config.ADMIN_PASSWORD, is_admin=True)


ANNOUNCEMENTS = [
    AnnouncementCreate(
        title="New Emotes Released!",
        content="Check out the new channel emotes available for subscribers! Six new emotes are now live.",
        type="NEW",
        published=True,
    ),
    AnnouncementCreate(
        title="Schedule Update",
        content="Stream schedule has been updated for next week. Check the schedule section for details!",
        type="IMPORTANT",
        published=True,
    ),
    AnnouncementCreate(
        title="Community Tournament",
        content="Join our upcoming community tournament next Saturday with prizes for the top players!",
        type="EVENT",
        published=True,
    ),
]

SCHEDULE_ITEMS = [
    ScheduleItemCreate(
        title="Ranked Matches",
        description="Competitive gameplay with viewer callouts",
        day_of_week=1,
        start_time="18:00",
        end_time="21:00",
        time_zone="EST",
    ),
    ScheduleItemCreate(
        title="Community Game Night",
        description="Playing games with subscribers and viewers",
        day_of_week=2,
        start_time="19:00",
        end_time="22:00",
        time_zone="EST",
    ),
]

VIDEOS = [
    VideoCreate(
        title="Insane 1v5 Clutch Moment - You Won't Believe It!",
        thumbnail_url="https://images.unsplash.com/photo-1542751371-adc38448a05e?ixlib=rb-4.0.3",
        video_url="https://www.youtube.com/watch?v=example1",
        duration="15:42",
        type="Highlights",
        views=2300,
        published=True,
    ),
    VideoCreate(
        title="Weekly Highlights Compilation - Best Moments",
        thumbnail_url="https://images.unsplash.com/photo-1550745165-9bc0b252726f?ixlib=rb-4.0.3",
        video_url="https://www.youtube.com/watch?v=example2",
        duration="23:17",
        type="Highlights",
        views=1700,
        published=True,
    ),
    VideoCreate(
        title="Full Stream - Tournament Qualifiers w/ Team",
        thumbnail_url="https://images.unsplash.com/photo-1560253023-3ec5d502959f?ixlib=rb-4.0.3",
        video_url="https://www.youtube.com/watch?v=example3",
        duration="3:42:15",
        type="Full Streams",
        views=5800,
        published=True,
    ),
]

ABOUT_ME = (
    "Hey everyone! I'm Rennsz, a passionate streamer dedicated to creating entertaining content. "
    "Whether on my IRL channel (Rennsz) or my gaming channel (Rennszino), I strive to create a "
    "welcoming community where viewers can relax and have fun. Join me for an exciting mix of "
    "real-life adventures and gaming sessions!"
)

SOCIAL_LINKS = [
    SocialLinkCreate(platform="Youtube", url="https://youtube.com/user/Rennsz", display_name="Rennsz", icon="SiYoutube"),
    SocialLinkCreate(platform="Twitter", url="https://twitter.com/Rennsz", display_name="@Rennsz", icon="SiTwitter"),
    SocialLinkCreate(platform="Instagram", url="https://instagram.com/Rennsz", display_name="@Rennsz", icon="SiInstagram"),
    SocialLinkCreate(platform="Discord", url="https://discord.gg/Rennsz", display_name="Rennsz Community", icon="SiDiscord"),
    SocialLinkCreate(platform="Twitch", url="https://twitch.tv/Rennsz", display_name="Rennsz", icon="SiTwitch"),
]

SETTINGS = {
    "twitchUsername": "Rennsz",
    "twitchAltUsername": "Rennszino",
    "currentChannel": "Rennsz",
}


async def seed_storage(storage) -> None:
    """Fill whatever is missing. Safe to run against an already seeded store."""
    admin = admin_user()
    if await storage.get_user_by_username(admin.username) is None:
        logger.info("Creating admin user...")
        await storage.create_user(admin)

    if not await storage.list_announcements():
        logger.info("Adding sample announcements...")
        for announcement in ANNOUNCEMENTS:
            await storage.create_announcement(announcement)

    if not await storage.list_schedule_items():
        logger.info("Adding sample schedule items...")
        for item in SCHEDULE_ITEMS:
            await storage.create_schedule_item(item)

    if not await storage.list_videos():
        logger.info("Adding sample videos...")
        for video in VIDEOS:
            await storage.create_video(video)

    if await storage.get_about_me() is None:
        await storage.update_about_me(ABOUT_ME)

    if not await storage.list_social_links():
        logger.info("Adding sample social links...")
        for link in SOCIAL_LINKS:
            await storage.create_social_link(link)

    for key, value in SETTINGS.items():
        if await storage.get_setting(key) is None:
            await storage.set_setting(key, value)


async def main() -> None:
    from streamsite.crud import DbStorage
    from streamsite.database import make_engine

    if not config.DATABASE_URL:
        raise SystemExit('You must set "DATABASE_URL" to seed the database.')

    storage = DbStorage(make_engine(config.DATABASE_URL, echo=config.SQL_ECHO))
    try:
        logger.info("Creating tables if they don't exist...")
        await storage.create_tables()
        await seed_storage(storage)
        logger.info("Database setup complete!")
    finally:
        await storage.close()


if __name__ == "__main__":
    asyncio.run(main())
