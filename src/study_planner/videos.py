"""Video recommendations per topic, cached in sqlite for a week.

The actual search is a callable passed in by the caller (``fetch(query)``
returning a list of video dicts); this module only builds the query, filters
the results and keeps the cache.
"""
import json
import logging
import re
from datetime import datetime, timedelta
from typing import Callable

from study_planner.clock import parse_timestamp
from study_planner.db import get_connection

logger = logging.getLogger(__name__)

CACHE_TTL = timedelta(days=7)
MIN_VIDEO_SECONDS = 10 * 60
MAX_VIDEO_SECONDS = 40 * 60
MAX_VIDEOS = 3

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def build_search_query(topic_name: str, subject_name: str, exam_context: str | None = None) -> str:
    if exam_context:
        return f"{topic_name} {subject_name} explained for {exam_context}"
    return f"{topic_name} {subject_name} full explanation for exams"


def parse_duration(duration: str) -> int:
    """ISO-8601 duration such as ``PT1H2M3S`` to seconds; unparseable values are 0."""
    match = _DURATION_RE.match(duration or "")
    if not match:
        return 0
    hours, minutes, seconds = (int(g or 0) for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def format_duration(seconds: int) -> str:
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def filter_videos(videos: list[dict]) -> list[dict]:
    """Keep 10-40 minute videos that don't look like shorts, at most three."""
    kept = []
    for video in videos:
        seconds = video.get("duration_seconds")
        if seconds is None:
            seconds = parse_duration(video.get("duration", ""))
        if seconds < MIN_VIDEO_SECONDS or seconds > MAX_VIDEO_SECONDS:
            continue
        if "short" in video.get("title", "").lower():
            continue
        kept.append({**video, "duration_seconds": seconds, "duration": format_duration(seconds)})
    return kept[:MAX_VIDEOS]


def get_cached_videos(db_path: str, topic_id: int, now: datetime) -> list[dict] | None:
    """Cached videos for a topic, or None when missing or expired."""
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT videos, expires_at FROM video_cache WHERE topic_id = ?", (topic_id,)
    ).fetchone()
    conn.close()
    if row is None or parse_timestamp(row["expires_at"]) <= now:
        return None
    return json.loads(row["videos"])


def get_topic_videos(
    db_path: str,
    topic_id: int,
    query: str,
    fetch: Callable[[str], list[dict]],
    now: datetime,
) -> list[dict]:
    """Return the topic's videos from cache, or fetch, filter and cache them."""
    cached = get_cached_videos(db_path, topic_id, now)
    if cached is not None:
        logger.debug("Video cache hit for topic %d", topic_id)
        return cached

    videos = filter_videos(fetch(query))
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO video_cache (topic_id, search_query, videos, fetched_at, expires_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(topic_id) DO UPDATE SET search_query=excluded.search_query,
            videos=excluded.videos, fetched_at=excluded.fetched_at, expires_at=excluded.expires_at""",
        (topic_id, query, json.dumps(videos), now.isoformat(), (now + CACHE_TTL).isoformat()),
    )
    conn.commit()
    conn.close()
    logger.info("Cached %d videos for topic %d", len(videos), topic_id)
    return videos
