"""Sources — paged fetchers that feed the sync engine."""

from timelines.sources.bluesky_adapter import BlueskySource
from timelines.sources.lastfm_adapter import LastfmSource
from timelines.sources.registry import register_source
from timelines.sources.twitter_adapter import TwitterTimelineSource
from timelines.sources.twitter_archive import TwitterArchiveSource

register_source("bluesky", BlueskySource)
register_source("lastfm", LastfmSource)
register_source("twitter", TwitterTimelineSource)
register_source("twitter-archive", TwitterArchiveSource)
