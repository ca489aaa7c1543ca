"""Tests for the /ws endpoint."""

import pytest
from starlette.websockets import WebSocketDisconnect

from marginalia.broadcast.websocket_router import AUTH_FAILED_CLOSE_CODE


URL = "https://example.com/post"


def connect(client, token=None):
    path = f"/ws?token={token}" if token else "/ws"
    return client.websocket_connect(path)


class TestConnection:
    """Handshake and protocol basics."""

    def test_anonymous_connect(self, client):
        with connect(client) as ws:
            hello = ws.receive_json()

        assert hello["type"] == "connected"
        assert hello["connectionId"]
        assert hello["userId"] is None

    def test_authenticated_connect(self, client, alice, token_for):
        with connect(client, token_for(alice)) as ws:
            hello = ws.receive_json()
        assert hello["userId"] == str(alice.user_id)

    def test_bad_token_is_rejected(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info, connect(client, "bogus"):
            pass
        assert exc_info.value.code == AUTH_FAILED_CLOSE_CODE

    def test_ping_pong(self, client):
        with connect(client) as ws:
            ws.receive_json()
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    @pytest.mark.parametrize(
        ("raw", "fragment"),
        [
            ("not json", "Malformed"),
            ('{"no": "type"}', "type"),
            ('{"type": "dance"}', "Unknown message type"),
            ('{"type": "joinRoom"}', "url is required"),
        ],
    )
    def test_bad_messages_get_errors(self, client, raw, fragment):
        with connect(client) as ws:
            ws.receive_json()
            ws.send_text(raw)
            reply = ws.receive_json()

        assert reply["type"] == "error"
        assert fragment in reply["message"]

    def test_notifications_need_a_token(self, client):
        with connect(client) as ws:
            ws.receive_json()
            ws.send_json({"type": "subscribeNotifications"})
            reply = ws.receive_json()

        assert reply == {"type": "error", "message": "Authentication required"}


class TestRoomEvents:
    """Per-URL events pushed after HTTP writes."""

    def test_new_comment_reaches_room(self, client, alice, auth_headers):
        with connect(client) as ws:
            ws.receive_json()
            ws.send_json({"type": "joinRoom", "url": URL})
            assert ws.receive_json() == {"type": "roomJoined", "url": URL}

            response = client.post(
                "/api/comments",
                json={"url": URL, "text": "live"},
                headers=auth_headers(alice),
            )
            event = ws.receive_json()

        assert event["type"] == "newComment"
        assert event["data"]["url"] == URL
        assert event["data"]["comment"]["id"] == response.json()["id"]

    def test_vote_and_delete_events(self, client, alice, bob, auth_headers):
        created = client.post(
            "/api/comments",
            json={"url": URL, "text": "soon gone"},
            headers=auth_headers(alice),
        ).json()

        with connect(client) as ws:
            ws.receive_json()
            ws.send_json({"type": "joinRoom", "url": URL})
            ws.receive_json()

            client.post(
                f"/api/comments/{created['id']}/vote",
                json={"voteType": "up"},
                headers=auth_headers(bob),
            )
            voted = ws.receive_json()
            client.delete(
                f"/api/comments/{created['id']}", headers=auth_headers(alice)
            )
            deleted = ws.receive_json()

        assert voted["type"] == "commentVoted"
        assert voted["data"]["upvotes"] == 1
        assert deleted["type"] == "commentDeleted"
        assert deleted["data"]["deletedIds"] == [created["id"]]

    def test_leave_room(self, client):
        with connect(client) as ws:
            ws.receive_json()
            ws.send_json({"type": "joinRoom", "url": URL})
            ws.receive_json()
            ws.send_json({"type": "leaveRoom", "url": URL})
            assert ws.receive_json() == {"type": "roomLeft", "url": URL}

        assert client.app.state.hub.topic_subscribers(URL) == set()


class TestNotificationEvents:
    """Per-user notification stream."""

    def test_mention_reaches_only_the_recipient(
        self, client, alice, bob, carol, token_for, auth_headers
    ):
        # Bob becomes mentionable once the service has seen his token
        client.get("/api/auth/me", headers=auth_headers(bob))

        with connect(client, token_for(bob)) as bob_ws, connect(
            client, token_for(carol)
        ) as carol_ws:
            for ws in (bob_ws, carol_ws):
                ws.receive_json()
                ws.send_json({"type": "subscribeNotifications"})
                assert ws.receive_json()["type"] == "notificationsSubscribed"

            client.post(
                "/api/comments",
                json={"url": URL, "text": "hey @bob"},
                headers=auth_headers(alice),
            )
            event = bob_ws.receive_json()

            carol_ws.send_json({"type": "ping"})
            carol_next = carol_ws.receive_json()

        assert event["type"] == "notification"
        assert event["data"]["notification"]["userId"] == str(bob.user_id)
        assert carol_next == {"type": "pong"}

    def test_disconnect_cleans_up(self, client, alice, token_for):
        with connect(client, token_for(alice)) as ws:
            ws.receive_json()
            ws.send_json({"type": "subscribeNotifications"})
            ws.receive_json()

        hub = client.app.state.hub
        assert hub.user_subscribers(alice.user_id) == set()
