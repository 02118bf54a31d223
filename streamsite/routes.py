# streamsite/routes.py
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from streamsite import config, schemas
from streamsite.auth import AdminSession, authenticate_user, get_storage, require_admin
from streamsite.site_settings import get_site_settings, set_current_channel
from streamsite.storage import Storage

router = APIRouter(prefix="/api")

limiter = Limiter(key_func=get_remote_address)


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_unset=isinstance(model, schemas.PartialModel))


@router.get("/health")
async def health():
    return {"status": "ok"}


# --- Auth Routes ---
@router.post("/auth/login", response_model=schemas.LoginResponse)
async def login(form: schemas.LoginRequest, storage: Storage = Depends(get_storage)):
    user = await authenticate_user(storage, form.username, form.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return schemas.LoginResponse(token=user.username, is_admin=user.is_admin)


# --- Settings Routes ---
@router.get("/settings", response_model=schemas.SiteSettings)
async def read_site_settings(storage: Storage = Depends(get_storage)):
    return await get_site_settings(storage)


@router.post("/settings", response_model=schemas.Setting)
async def update_setting(
    body: schemas.SettingIn,
    background_tasks: BackgroundTasks,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    setting = await storage.set_setting(body.key, body.value)
    background_tasks.add_task(
        storage.send_audit_event,
        "Settings Updated",
        {"key": body.key, "value": body.value, "user": admin.user.username},
    )
    return setting


@router.put("/settings/channel", response_model=schemas.ChannelSwitched)
async def switch_channel(
    body: schemas.ChannelSwitch,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    await set_current_channel(storage, body.channel)
    background_tasks.add_task(
        storage.send_audit_event,
        "Channel Changed",
        {"channel": body.channel, "user": admin.user.username, "ip": get_remote_address(request)},
    )
    return schemas.ChannelSwitched(message="Channel updated successfully", channel=body.channel)


# --- Announcement Routes ---
@router.get("/announcements", response_model=List[schemas.Announcement])
async def list_announcements(
    limit: Optional[int] = Query(None, ge=0),
    storage: Storage = Depends(get_storage),
):
    """With a positive `limit`, only the newest published announcements."""
    if limit:
        return await storage.list_latest_announcements(limit)
    return await storage.list_announcements()


@router.get("/announcements/{announcement_id}", response_model=schemas.Announcement)
async def get_announcement(announcement_id: int, storage: Storage = Depends(get_storage)):
    announcement = await storage.get_announcement(announcement_id)
    if not announcement:
        raise _not_found("Announcement")
    return announcement


@router.post("/announcements", response_model=schemas.Announcement, status_code=201)
async def create_announcement(
    body: schemas.AnnouncementCreate,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    announcement = await storage.create_announcement(body)
    admin.log_action("Create Announcement", _dump(body))
    return announcement


@router.put("/announcements/{announcement_id}", response_model=schemas.Announcement)
async def update_announcement(
    announcement_id: int,
    body: schemas.AnnouncementUpdate,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    announcement = await storage.update_announcement(announcement_id, body)
    if not announcement:
        raise _not_found("Announcement")
    admin.log_action("Update Announcement", {"id": announcement_id, "changes": _dump(body)})
    return announcement


@router.delete("/announcements/{announcement_id}", response_model=schemas.Success)
async def delete_announcement(
    announcement_id: int,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_announcement(announcement_id):
        raise _not_found("Announcement")
    admin.log_action("Delete Announcement", {"id": announcement_id})
    return schemas.Success()


# --- Schedule Routes ---
@router.get("/schedule", response_model=List[schemas.ScheduleItem])
async def list_schedule(
    day: Optional[int] = Query(None, ge=0, le=6),
    storage: Storage = Depends(get_storage),
):
    if day is not None:
        return await storage.list_schedule_items_by_day(day)
    return await storage.list_schedule_items()


@router.get("/schedule/{item_id}", response_model=schemas.ScheduleItem)
async def get_schedule_item(item_id: int, storage: Storage = Depends(get_storage)):
    item = await storage.get_schedule_item(item_id)
    if not item:
        raise _not_found("Schedule item")
    return item


@router.post("/schedule", response_model=schemas.ScheduleItem, status_code=201)
async def create_schedule_item(
    body: schemas.ScheduleItemCreate,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    item = await storage.create_schedule_item(body)
    admin.log_action("Create Schedule Item", _dump(body))
    return item


@router.put("/schedule/{item_id}", response_model=schemas.ScheduleItem)
async def update_schedule_item(
    item_id: int,
    body: schemas.ScheduleItemUpdate,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    item = await storage.update_schedule_item(item_id, body)
    if not item:
        raise _not_found("Schedule item")
    admin.log_action("Update Schedule Item", {"id": item_id, "changes": _dump(body)})
    return item


@router.delete("/schedule/{item_id}", response_model=schemas.Success)
async def delete_schedule_item(
    item_id: int,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_schedule_item(item_id):
        raise _not_found("Schedule item")
    admin.log_action("Delete Schedule Item", {"id": item_id})
    return schemas.Success()


# --- Video Routes ---
@router.get("/videos", response_model=List[schemas.Video])
async def list_videos(
    video_type: Optional[str] = Query(None, alias="type"),
    limit: Optional[int] = Query(None, ge=0),
    storage: Storage = Depends(get_storage),
):
    """
    ?type= lists published videos of that type (optionally capped by ?limit=).
    ?limit= alone lists the newest published videos.
    Without either, every video including drafts.
    """
    if video_type:
        videos = await storage.list_videos_by_type(video_type)
        return videos[:limit] if limit else videos
    if limit:
        return await storage.list_latest_videos(limit)
    return await storage.list_videos()


@router.get("/videos/{video_id}", response_model=schemas.Video)
async def get_video(video_id: int, storage: Storage = Depends(get_storage)):
    video = await storage.get_video(video_id)
    if not video:
        raise _not_found("Video")
    return video


@router.post("/videos", response_model=schemas.Video, status_code=201)
async def create_video(
    body: schemas.VideoCreate,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    video = await storage.create_video(body)
    admin.log_action("Create Video", _dump(body))
    return video


@router.put("/videos/{video_id}", response_model=schemas.Video)
async def update_video(
    video_id: int,
    body: schemas.VideoUpdate,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    video = await storage.update_video(video_id, body)
    if not video:
        raise _not_found("Video")
    admin.log_action("Update Video", {"id": video_id, "changes": _dump(body)})
    return video


@router.delete("/videos/{video_id}", response_model=schemas.Success)
async def delete_video(
    video_id: int,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_video(video_id):
        raise _not_found("Video")
    admin.log_action("Delete Video", {"id": video_id})
    return schemas.Success()


# --- About Me Routes ---
@router.get("/about")
async def get_about(storage: Storage = Depends(get_storage)):
    about = await storage.get_about_me()
    if not about:
        return {"content": ""}
    return _dump(about)


@router.put("/about", response_model=schemas.AboutMe)
async def update_about(
    body: schemas.AboutMeIn,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    about = await storage.update_about_me(body.content)
    admin.log_action("Update About Me", {"contentLength": len(body.content)})
    return about


# --- Social Link Routes ---
@router.get("/social-links", response_model=List[schemas.SocialLink])
async def list_social_links(storage: Storage = Depends(get_storage)):
    return await storage.list_social_links()


@router.get("/social-links/{link_id}", response_model=schemas.SocialLink)
async def get_social_link(link_id: int, storage: Storage = Depends(get_storage)):
    link = await storage.get_social_link(link_id)
    if not link:
        raise _not_found("Social link")
    return link


@router.post("/social-links", response_model=schemas.SocialLink, status_code=201)
async def create_social_link(
    body: schemas.SocialLinkCreate,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    link = await storage.create_social_link(body)
    admin.log_action("Create Social Link", _dump(link))
    return link


@router.put("/social-links/{link_id}", response_model=schemas.SocialLink)
async def update_social_link(
    link_id: int,
    body: schemas.SocialLinkUpdate,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    link = await storage.update_social_link(link_id, body)
    if not link:
        raise _not_found("Social link")
    admin.log_action("Update Social Link", {"id": link_id, "changes": _dump(body)})
    return link


@router.delete("/social-links/{link_id}", response_model=schemas.Message)
async def delete_social_link(
    link_id: int,
    admin: AdminSession = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_social_link(link_id):
        raise _not_found("Social link")
    admin.log_action("Delete Social Link", {"id": link_id})
    return schemas.Message(message="Social link deleted")


# --- Contact Route ---
@router.post("/contact", response_model=schemas.Success)
@limiter.limit(config.CONTACT_RATE_LIMIT)
async def contact(
    request: Request,
    form: schemas.ContactRequest,
    background_tasks: BackgroundTasks,
    storage: Storage = Depends(get_storage),
):
    """Nothing is stored; the submission only goes to the audit sink."""
    data = _dump(form)
    data["ip"] = get_remote_address(request)
    background_tasks.add_task(storage.send_audit_event, "Contact Form Submission", data)
    return schemas.Success()
