# streamsite/schemas.py
from datetime import datetime
from typing import Annotated, ClassVar, Dict, FrozenSet, Optional

from pydantic import AfterValidator, AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel


_url_adapter = TypeAdapter(AnyUrl)


def _check_url(value: str) -> str:
    # Validate only; the stored value keeps the caller's spelling.
    _url_adapter.validate_python(value)
    return value


DayOfWeek = Annotated[int, Field(ge=0, le=6)]
ClockTime = Annotated[str, Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")]
Url = Annotated[str, AfterValidator(_check_url)]


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class PartialModel(CamelModel):
    """Every field optional. Fields that were sent may not be null unless listed in `nullable_fields`."""

    nullable_fields: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def reject_nulls(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in self.nullable_fields:
                raise ValueError(f"{to_camel(name)} may not be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# --- Users ---

class UserCreate(CamelModel):
    username: str
    password: str
    is_admin: bool = False


class User(UserCreate):
    id: int


class LoginRequest(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(CamelModel):
    token: str
    is_admin: bool


# --- Announcements ---

class AnnouncementCreate(CamelModel):
    title: str
    content: str
    type: str
    published: bool = True


class AnnouncementUpdate(PartialModel):
    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[str] = None
    published: Optional[bool] = None


class Announcement(AnnouncementCreate):
    id: int
    created_at: datetime


# --- Schedule ---

class ScheduleItemCreate(CamelModel):
    title: str
    description: str
    day_of_week: DayOfWeek
    start_time: ClockTime
    end_time: ClockTime
    time_zone: str


class ScheduleItemUpdate(PartialModel):
    title: Optional[str] = None
    description: Optional[str] = None
    day_of_week: Optional[DayOfWeek] = None
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    time_zone: Optional[str] = None


class ScheduleItem(ScheduleItemCreate):
    id: int


# --- Videos ---

class VideoCreate(CamelModel):
    title: str
    thumbnail_url: str
    video_url: str
    duration: str
    type: str
    views: int = Field(default=0, ge=0)
    published: bool = True


class VideoUpdate(PartialModel):
    title: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    duration: Optional[str] = None
    type: Optional[str] = None
    views: Optional[int] = Field(default=None, ge=0)
    published: Optional[bool] = None


class Video(VideoCreate):
    id: int
    created_at: datetime


# --- Settings ---

class SettingIn(CamelModel):
    key: str = Field(min_length=1)
    value: str


class Setting(SettingIn):
    id: int


class ChannelSwitch(CamelModel):
    channel: str = Field(min_length=1)


class ChannelSwitched(CamelModel):
    message: str
    channel: str


class SiteSettings(CamelModel):
    twitch_username: str
    twitch_alt_username: str
    current_channel: str
    social: Dict[str, str]


# --- Social links ---

class SocialLinkCreate(CamelModel):
    platform: str
    display_name: str
    url: Url
    icon: Optional[str] = None
    is_active: bool = True


class SocialLinkUpdate(PartialModel):
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset({"icon"})

    platform: Optional[str] = None
    display_name: Optional[str] = None
    url: Optional[Url] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None


class SocialLink(SocialLinkCreate):
    id: int


# --- About me ---

class AboutMeIn(CamelModel):
    content: str = Field(min_length=1)


class AboutMe(CamelModel):
    id: int
    content: str
    updated_at: datetime


# --- Contact / misc ---

class ContactRequest(CamelModel):
    name: str = Field(min_length=1)
    email: str
    subject: str = ""
    message: str = Field(min_length=1)


class Message(CamelModel):
    message: str


class Success(CamelModel):
    success: bool = True
