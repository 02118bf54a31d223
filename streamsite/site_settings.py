# streamsite/site_settings.py
from streamsite.schemas import Setting, SiteSettings
from streamsite.storage import Storage

# Shown when a setting row is missing or empty, so the public page always has a channel.
DEFAULT_TWITCH_USERNAME = "Rennsz"
DEFAULT_TWITCH_ALT_USERNAME = "Rennszino"
DEFAULT_CURRENT_CHANNEL = "Rennsz"

CURRENT_CHANNEL_KEY = "currentChannel"


async def get_site_settings(storage: Storage) -> SiteSettings:
    """Merge the identity settings and the active social links into one view."""
    twitch_username = await storage.get_setting("twitchUsername")
    twitch_alt_username = await storage.get_setting("twitchAltUsername")
    current_channel = await storage.get_setting(CURRENT_CHANNEL_KEY)

    social = {}
    for link in await storage.list_active_social_links():
        social[link.platform.lower()] = link.url

    return SiteSettings(
        twitch_username=(twitch_username and twitch_username.value) or DEFAULT_TWITCH_USERNAME,
        twitch_alt_username=(twitch_alt_username and twitch_alt_username.value) or DEFAULT_TWITCH_ALT_USERNAME,
        current_channel=(current_channel and current_channel.value) or DEFAULT_CURRENT_CHANNEL,
        social=social,
    )


async def set_current_channel(storage: Storage, channel: str) -> Setting:
    # Any name is accepted, not only the two configured usernames.
    return await storage.set_setting(CURRENT_CHANNEL_KEY, channel)
