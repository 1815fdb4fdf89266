"""YouTube Data API client used to attach videos to roadmap tasks.

Every call is a blocking requests.get; async callers run the enrichment in a
thread pool executor. A missing YOUTUBE_API_KEY or any HTTP error yields an
empty list so that roadmap generation never fails because of YouTube.
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

import requests

from api.utils.debug import print__youtube_debug

YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"
YOUTUBE_TIMEOUT = 10  # seconds per request

EDUCATIONAL_QUERY_SUFFIXES = ["tutorial", "explained", "course", "programming", "coding"]
EDUCATIONAL_RESULTS_PER_QUERY = 2
EDUCATIONAL_MAX_VIDEOS = 5

EDUCATIONAL_CHANNELS = {
    "striver": "UCJskGeByzRRSvmOyZOz61ig",  # Take U Forward
    "abdul_bari": "UCZCFT11CWBi3MHNlGf019nw",
    "tushar_roy": "UCZLJf_R2sWyUtXSKiKlyvAw",
    "mycodeschool": "UClEEsT7DkdVO_fkrBw0OTrA",
    "gfg": "UC0RhatS1pyxInC00YKjjBqQ",  # GeeksforGeeks
}
CHANNEL_RESULTS_PER_CHANNEL = 2
CHANNEL_MAX_VIDEOS = 3


def get_youtube_api_key():
    return os.getenv("YOUTUBE_API_KEY")


def map_search_item(item: dict) -> dict:
    """Map one search.list item to the video dict used across the app."""
    video_id = item["id"]["videoId"]
    snippet = item["snippet"]
    return {
        "id": video_id,
        "title": snippet.get("title"),
        "description": snippet.get("description"),
        "thumbnail": snippet.get("thumbnails", {}).get("medium", {}).get("url"),
        "channelTitle": snippet.get("channelTitle"),
        "publishedAt": snippet.get("publishedAt"),
        "url": f"https://www.youtube.com/watch?v={video_id}",
    }


def _search(params: dict) -> list:
    api_key = get_youtube_api_key()
    if not api_key:
        print__youtube_debug("⚠️ YouTube API key not configured")
        return []

    try:
        response = requests.get(
            f"{YOUTUBE_API_BASE_URL}/search",
            params={**params, "key": api_key},
            timeout=YOUTUBE_TIMEOUT,
        )
        response.raise_for_status()
        return [map_search_item(item) for item in response.json().get("items", [])]
    except Exception as e:
        print__youtube_debug(f"❌ Error fetching YouTube videos: {e}")
        return []


def search_videos(query: str, max_results: int = 10) -> list:
    """Search medium-length, high definition, safe-search videos for ``query``."""
    print__youtube_debug(f"🔍 Searching YouTube for: {query}")
    return _search(
        {
            "part": "snippet",
            "q": query,
            "type": "video",
            "maxResults": max_results,
            "order": "relevance",
            "videoDuration": "medium",  # 4-20 minutes
            "videoDefinition": "high",
            "safeSearch": "strict",
        }
    )


def get_channel_videos(channel_id: str, query: str = None, max_results: int = 5) -> list:
    params = {
        "part": "snippet",
        "channelId": channel_id,
        "type": "video",
        "maxResults": max_results,
        "order": "relevance",
    }
    if query:
        params["q"] = query
    return _search(params)


def _unique_by_id(videos: list) -> list:
    seen = set()
    unique = []
    for video in videos:
        if video["id"] in seen:
            continue
        seen.add(video["id"])
        unique.append(video)
    return unique


def get_educational_videos(topic: str) -> list:
    """Collect videos for several educational phrasings of ``topic``.

    Two results per query variant, de-duplicated by video id, first five kept.
    """
    all_videos = []
    for suffix in EDUCATIONAL_QUERY_SUFFIXES:
        all_videos.extend(
            search_videos(f"{topic} {suffix}", EDUCATIONAL_RESULTS_PER_QUERY)
        )
    return _unique_by_id(all_videos)[:EDUCATIONAL_MAX_VIDEOS]


def get_from_educational_channels(topic: str) -> list:
    videos = []
    for name, channel_id in EDUCATIONAL_CHANNELS.items():
        print__youtube_debug(f"📺 Searching channel {name} for: {topic}")
        videos.extend(
            get_channel_videos(channel_id, topic, CHANNEL_RESULTS_PER_CHANNEL)
        )
    return videos[:CHANNEL_MAX_VIDEOS]


def to_task_video(video: dict) -> dict:
    return {
        "title": video["title"],
        "url": video["url"],
        "thumbnail": video["thumbnail"],
        "channel": video["channelTitle"],
        # search.list carries no duration; the query already filters to medium
        "duration": "Medium",
    }


def enhance_with_youtube_videos(roadmap: dict) -> dict:
    """Replace each task's ``youtubeSearch`` query with concrete videos.

    Tasks whose search returns nothing keep their query. Any error stops the
    enrichment and the roadmap is returned as it is.
    """
    print__youtube_debug("🎬 Enhancing roadmap with YouTube videos...")
    try:
        for module in roadmap.get("modules") or []:
            for task in module.get("tasks") or []:
                resources = task.get("resources")
                if not resources or not resources.get("youtubeSearch"):
                    continue

                videos = get_educational_videos(resources["youtubeSearch"])
                if videos:
                    resources["videos"] = [to_task_video(video) for video in videos]
                    del resources["youtubeSearch"]
    except Exception as e:
        print__youtube_debug(f"❌ Error enhancing with YouTube videos: {e}")

    return roadmap
