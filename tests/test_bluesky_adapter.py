"""Tests for timelines.sources.bluesky_adapter — Bluesky author feed adapter."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import httpx
import pytest

from timelines.config import BlueskyConfig
from timelines.errors import DecodeError, FetchError
from timelines.records import BlueskyPostReply
from timelines.sources.bluesky_adapter import BlueskySource


def _feed_item(rkey, text="hello", created_at="2024-03-01T10:00:00.000Z", reply_to=None, repost=False):
    item = {
        "post": {
            "uri": f"at://did:plc:me/app.bsky.feed.post/{rkey}",
            "record": {"$type": "app.bsky.feed.post", "text": text, "createdAt": created_at},
        }
    }
    if reply_to:
        item["reply"] = {
            "parent": {
                "uri": reply_to,
                "author": {"did": "did:plc:other", "handle": "other.bsky.social"},
            }
        }
    if repost:
        item["reason"] = {"$type": "app.bsky.feed.defs#reasonRepost"}
    return item


def _response(json_data):
    resp = MagicMock()
    resp.raise_for_status = MagicMock()
    resp.json.return_value = json_data
    return resp


def _session():
    return _response({"accessJwt": "jwt-token", "did": "did:plc:me"})


def _source():
    return BlueskySource(BlueskyConfig(handle="me.bsky.social", app_password="app-pass"))


class TestBlueskySource:
    def test_first_page_logs_in_and_requests_without_cursor(self):
        source = _source()
        page = _response({"feed": [_feed_item("3k2")], "cursor": "next-1"})

        with patch("timelines.sources.bluesky_adapter.httpx.post", return_value=_session()) as post, \
                patch("timelines.sources.bluesky_adapter.httpx.get", return_value=page) as get:
            items, cursor = source.fetch_page(None)

        assert cursor == "next-1"
        assert len(items) == 1
        post.assert_called_once()
        assert post.call_args.kwargs["json"] == {
            "identifier": "me.bsky.social",
            "password": "app-pass",
        }
        params = get.call_args.kwargs["params"]
        assert params["actor"] == "did:plc:me"
        assert "cursor" not in params
        assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer jwt-token"

    def test_session_created_once_across_pages(self):
        source = _source()
        pages = [
            _response({"feed": [_feed_item("2")], "cursor": "c1"}),
            _response({"feed": [_feed_item("1")]}),
        ]

        with patch("timelines.sources.bluesky_adapter.httpx.post", return_value=_session()) as post, \
                patch("timelines.sources.bluesky_adapter.httpx.get", side_effect=pages) as get:
            source.fetch_page(None)
            _, cursor = source.fetch_page("c1")

        assert post.call_count == 1
        assert get.call_args.kwargs["params"]["cursor"] == "c1"
        assert cursor is None

    def test_skips_reposts_and_non_post_records(self):
        source = _source()
        other = _feed_item("x")
        other["post"]["record"]["$type"] = "app.bsky.feed.generator"
        page = _response({"feed": [_feed_item("1"), _feed_item("2", repost=True), other]})

        with patch("timelines.sources.bluesky_adapter.httpx.post", return_value=_session()), \
                patch("timelines.sources.bluesky_adapter.httpx.get", return_value=page):
            items, _ = source.fetch_page(None)

        assert [i["post"]["uri"] for i in items] == ["at://did:plc:me/app.bsky.feed.post/1"]

    def test_login_failure_raises_fetch_error(self):
        source = _source()
        with patch(
            "timelines.sources.bluesky_adapter.httpx.post",
            side_effect=httpx.ConnectError("fail"),
        ):
            with pytest.raises(FetchError, match="login failed"):
                source.fetch_page(None)

    def test_feed_http_error_raises_fetch_error(self):
        source = _source()
        with patch("timelines.sources.bluesky_adapter.httpx.post", return_value=_session()), \
                patch("timelines.sources.bluesky_adapter.httpx.get", side_effect=httpx.ReadTimeout("slow")):
            with pytest.raises(FetchError):
                source.fetch_page(None)

    def test_missing_feed_field_raises_fetch_error(self):
        source = _source()
        with patch("timelines.sources.bluesky_adapter.httpx.post", return_value=_session()), \
                patch("timelines.sources.bluesky_adapter.httpx.get", return_value=_response({"error": "x"})):
            with pytest.raises(FetchError):
                source.fetch_page(None)

    @pytest.mark.parametrize("body", [
        [],
        {"feed": ["oops"]},
    ])
    def test_malformed_feed_raises_fetch_error(self, body):
        source = _source()
        with patch("timelines.sources.bluesky_adapter.httpx.post", return_value=_session()), \
                patch("timelines.sources.bluesky_adapter.httpx.get", return_value=_response(body)):
            with pytest.raises(FetchError):
                source.fetch_page(None)

    def test_item_without_record_is_skipped(self):
        source = _source()
        broken = {"post": {"uri": "at://did:plc:me/app.bsky.feed.post/x", "record": None}}
        page = _response({"feed": [broken, _feed_item("3k2")]})
        with patch("timelines.sources.bluesky_adapter.httpx.post", return_value=_session()), \
                patch("timelines.sources.bluesky_adapter.httpx.get", return_value=page):
            items, _ = source.fetch_page(None)
        assert [item["post"]["uri"] for item in items] == ["at://did:plc:me/app.bsky.feed.post/3k2"]

    def test_expired_session_logs_in_again_and_retries(self):
        source = _source()
        expired = _response({"error": "ExpiredToken"})
        expired.status_code = 401
        page = _response({"feed": [_feed_item("3k2")], "cursor": "next-1"})
        fresh = _response({"accessJwt": "jwt-fresh", "did": "did:plc:me"})

        with patch("timelines.sources.bluesky_adapter.httpx.post", side_effect=[_session(), fresh]) as post, \
                patch("timelines.sources.bluesky_adapter.httpx.get", side_effect=[expired, page]) as get:
            items, cursor = source.fetch_page(None)

        assert post.call_count == 2
        assert get.call_count == 2
        assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer jwt-fresh"
        expired.raise_for_status.assert_not_called()
        assert len(items) == 1
        assert cursor == "next-1"

    def test_expired_token_error_body_triggers_relogin(self):
        source = _source()
        expired = _response({"error": "ExpiredToken", "message": "Token has expired"})
        expired.status_code = 400
        page = _response({"feed": []})

        with patch("timelines.sources.bluesky_adapter.httpx.post", return_value=_session()) as post, \
                patch("timelines.sources.bluesky_adapter.httpx.get", side_effect=[expired, page]):
            items, cursor = source.fetch_page(None)

        assert post.call_count == 2
        assert items == []
        assert cursor is None


class TestToRecord:
    def test_converts_post(self):
        post = _source().to_record(_feed_item("abc", text="hi there"))
        assert post.uri == "at://did:plc:me/app.bsky.feed.post/abc"
        assert post.text == "hi there"
        assert post.created_at == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert post.in_reply_to is None

    def test_converts_reply(self):
        post = _source().to_record(_feed_item("abc", reply_to="at://did:plc:other/app.bsky.feed.post/p"))
        assert post.in_reply_to == BlueskyPostReply(
            uri="at://did:plc:other/app.bsky.feed.post/p",
            author_did="did:plc:other",
            author_handle="other.bsky.social",
        )

    def test_missing_created_at_raises_decode_error(self):
        item = _feed_item("abc")
        del item["post"]["record"]["createdAt"]
        with pytest.raises(DecodeError):
            _source().to_record(item)
