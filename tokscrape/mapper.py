"""Project loosely-typed TikTok JSON into Video / User / Music.

Every optional field has an explicit default; only the identifiers are
required. Numbers may arrive as ints, floats or strings ("1.2M") and are
coerced, with anything unparseable mapping to 0.
"""

import logging
from datetime import date, datetime
from typing import Optional

from .errors import MappingError, NotFoundError
from .models import Music, User, Video

logger = logging.getLogger("tokscrape.mapper")

_SUFFIXES = {"K": 1_000, "M": 1_000_000, "B": 1_000_000_000}


def _dig(obj, *keys, default=None):
    """Drill into nested dicts safely."""
    for k in keys:
        if isinstance(obj, dict):
            obj = obj.get(k)
        else:
            return default
    return obj if obj is not None else default


def _safe_int(v) -> int:
    if isinstance(v, bool):
        return int(v)
    if isinstance(v, int):
        return max(v, 0)
    if isinstance(v, float):
        return max(int(v), 0) if v == v else 0
    if isinstance(v, str):
        v = v.replace(",", "").replace("+", "").strip().upper()
        mult = 1
        if v and v[-1] in _SUFFIXES:
            mult = _SUFFIXES[v[-1]]
            v = v[:-1]
        try:
            return max(int(float(v) * mult), 0)
        except (ValueError, OverflowError):
            return 0
    return 0


def _ts_to_date(ts) -> Optional[date]:
    """Epoch seconds -> calendar date in the local timezone."""
    ts = _safe_int(ts)
    if not ts:
        return None
    try:
        return datetime.fromtimestamp(ts).date()
    except (ValueError, OverflowError, OSError):
        return None


def _str(v) -> str:
    if v is None:
        return ""
    if isinstance(v, str):
        return v.strip()
    if isinstance(v, (int, float)):
        return str(v)
    return ""


def _first_url(v) -> str:
    """Accept either a bare URL or a {"url_list": [...]} object."""
    if isinstance(v, dict):
        urls = v.get("url_list") or []
        return _str(urls[0]) if urls else ""
    return _str(v)


def _author_ref(v) -> str:
    if isinstance(v, dict):
        return _str(v.get("uniqueId") or v.get("id"))
    return _str(v)


def _item_list(state: dict, *path) -> list:
    ids = _dig(state, "ItemList", *path, "list", default=[])
    return ids if isinstance(ids, list) else []


def video_from_item(item: dict, author: Optional[str] = None) -> Video:
    """Map one raw item (listing, hashtag or detail module entry).

    ``author`` overrides the item's own author reference; listing items only
    carry a bare author identifier.
    """
    if not isinstance(item, dict):
        raise MappingError(f"item 不是对象: {type(item).__name__}")
    video = item.get("video") if isinstance(item.get("video"), dict) else {}
    video_id = _str(video.get("id"))
    if not video_id:
        raise MappingError("缺少 video.id")

    stats = item.get("stats") if isinstance(item.get("stats"), dict) else {}
    download_url = _first_url(video.get("downloadAddr"))
    play_url = _first_url(video.get("playAddr"))

    return Video(
        id=video_id,
        description=_str(item.get("desc")),
        created=_ts_to_date(item.get("createTime")),
        height=_safe_int(video.get("height")),
        width=_safe_int(video.get("width")),
        duration=_safe_int(video.get("duration")),
        ratio=_str(video.get("ratio")),
        shares=_safe_int(stats.get("shareCount")),
        likes=_safe_int(stats.get("diggCount")),
        comments=_safe_int(stats.get("commentCount")),
        plays=_safe_int(stats.get("playCount")),
        download_url=download_url or play_url,
        cover=_first_url(video.get("cover")),
        dynamic_cover=_first_url(video.get("dynamicCover")),
        play_url=play_url,
        format=_str(video.get("format")),
        author=author if author is not None else _author_ref(item.get("author")),
    )


def _module_item(state: dict, item_id: str) -> dict:
    item = _dig(state, "ItemModule", item_id)
    if not isinstance(item, dict):
        raise NotFoundError(f"ItemModule 中没有 {item_id}")
    return item


def _detail_item(state: dict) -> dict:
    ids = _item_list(state, "video")
    if not ids:
        raise NotFoundError("Could not find the video on TikTok")
    return _module_item(state, _str(ids[0]))


def video_from_state(state: dict) -> Video:
    """Map the single video of a detail page. Author is the display name."""
    item = _detail_item(state)
    return video_from_item(item, author=_str(item.get("nickname")) or _author_ref(item.get("author")))


def videos_from_hashtag_state(state: dict) -> list[Video]:
    ids = _item_list(state, "challenge")
    if not ids:
        raise NotFoundError("该话题下没有作品")
    videos = []
    for item_id in ids:
        try:
            videos.append(video_from_item(_module_item(state, _str(item_id))))
        except (MappingError, NotFoundError) as e:
            logger.warning(f"跳过话题作品 {item_id}: {e}")
    return videos


def user_from_state(state: dict, username: str) -> User:
    users = _dig(state, "UserModule", "users", default={})
    u = users.get(username) if isinstance(users, dict) else None
    if not isinstance(u, dict):
        raise NotFoundError(f"用户不存在: {username}")
    user_id = _str(u.get("id"))
    if not user_id:
        raise MappingError(f"用户 {username} 缺少 id")
    stats = _dig(state, "UserModule", "stats", username, default={})
    if not isinstance(stats, dict):
        stats = {}
    return User(
        id=user_id,
        unique_id=_str(u.get("uniqueId")) or username,
        nickname=_str(u.get("nickname")),
        avatar=_first_url(u.get("avatarLarger")),
        signature=_str(u.get("signature")),
        created=_ts_to_date(u.get("createTime")),
        verified=bool(u.get("verified")),
        sec_uid=_str(u.get("secUid")),
        bio_link=_str(_dig(u, "bioLink", "link")) or None,
        private=bool(u.get("privateAccount")),
        under_18=bool(u.get("isUnderAge18")),
        followers=_safe_int(stats.get("followerCount")),
        following=_safe_int(stats.get("followingCount")),
        hearts=_safe_int(stats.get("heart", stats.get("heartCount"))),
        videos=_safe_int(stats.get("videoCount")),
    )


def music_from_item(item: dict) -> Music:
    m = item.get("music") if isinstance(item, dict) else None
    if not isinstance(m, dict):
        m = {}
    return Music(
        id=_str(m.get("id")),
        title=_str(m.get("title")),
        play_url=_first_url(m.get("playUrl")),
        cover_large=_first_url(m.get("coverLarge")),
        cover_thumb=_first_url(m.get("coverThumb")),
        author=_str(m.get("authorName")),
        duration=_safe_int(m.get("duration")),
        original=bool(m.get("original")),
        album=_str(m.get("album")) or None,
    )


def music_from_state(state: dict) -> Music:
    return music_from_item(_detail_item(state))
