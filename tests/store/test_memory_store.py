"""Tests for the in-memory store."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from marginalia.comments.models import VoteKind, create_comment, create_vote
from marginalia.core.errors import ConflictError
from marginalia.notifications.models import create_mention_notification


URL = "https://example.com/post"


def make_comment(url: str = URL, **overrides):
    comment = create_comment(
        url=url,
        author_id=uuid4(),
        author_name="alice",
        raw_text="hi",
        text="<p>hi</p>",
    )
    for name, value in overrides.items():
        setattr(comment, name, value)
    return comment


class TestComments:
    """Comment rows."""

    @pytest.mark.asyncio
    async def test_list_is_scoped_to_url_and_newest_first(self, store) -> None:
        older = make_comment(created_at=datetime(2024, 1, 1, tzinfo=UTC))
        newer = make_comment(created_at=datetime(2024, 1, 2, tzinfo=UTC))
        await store.insert_comment(newer)
        await store.insert_comment(older)
        await store.insert_comment(make_comment("https://other"))

        listed = await store.list_comments(URL)

        assert [c.comment_id for c in listed] == [newer.comment_id, older.comment_id]

    @pytest.mark.asyncio
    async def test_identical_timestamps_keep_insert_order(self, store) -> None:
        stamp = datetime(2024, 1, 1, tzinfo=UTC)
        first = make_comment(created_at=stamp)
        second = make_comment(created_at=stamp)
        await store.insert_comment(first)
        await store.insert_comment(second)

        listed = await store.list_comments(URL)

        assert [c.comment_id for c in listed] == [second.comment_id, first.comment_id]

    @pytest.mark.asyncio
    async def test_duplicate_insert_conflicts(self, store) -> None:
        comment = make_comment()
        await store.insert_comment(comment)
        with pytest.raises(ConflictError):
            await store.insert_comment(comment)

    @pytest.mark.asyncio
    async def test_returned_rows_are_copies(self, store) -> None:
        comment = make_comment()
        await store.insert_comment(comment)

        fetched = await store.get_comment(comment.comment_id)
        fetched.raw_text = "tampered"

        again = await store.get_comment(comment.comment_id)
        assert again.raw_text == "hi"

    @pytest.mark.asyncio
    async def test_update_and_delete(self, store) -> None:
        comment = make_comment()
        await store.insert_comment(comment)

        await store.update_comment(comment.edited("new", "<p>new</p>"))
        assert (await store.get_comment(comment.comment_id)).raw_text == "new"

        await store.delete_comment(comment)
        assert await store.get_comment(comment.comment_id) is None
        assert await store.list_comments(URL) == []

    @pytest.mark.asyncio
    async def test_update_of_missing_comment_does_not_create_it(self, store) -> None:
        comment = make_comment()
        await store.update_comment(comment)
        assert await store.get_comment(comment.comment_id) is None


class TestVotes:
    """Vote rows."""

    @pytest.mark.asyncio
    async def test_one_row_per_voter(self, store) -> None:
        comment_id, voter = uuid4(), uuid4()
        await store.insert_vote(create_vote(comment_id, voter, VoteKind.UP))

        with pytest.raises(ConflictError):
            await store.insert_vote(create_vote(comment_id, voter, VoteKind.DOWN))

        [vote] = await store.list_votes(comment_id)
        assert vote.kind is VoteKind.UP

    @pytest.mark.asyncio
    async def test_update_changes_kind(self, store) -> None:
        comment_id, voter = uuid4(), uuid4()
        await store.insert_vote(create_vote(comment_id, voter, VoteKind.UP))

        await store.update_vote(comment_id, voter, VoteKind.DOWN)

        vote = await store.get_vote(comment_id, voter)
        assert vote.kind is VoteKind.DOWN

    @pytest.mark.asyncio
    async def test_delete_single_and_all(self, store) -> None:
        comment_id = uuid4()
        voters = [uuid4() for _ in range(3)]
        for voter in voters:
            await store.insert_vote(create_vote(comment_id, voter, VoteKind.UP))

        await store.delete_vote(comment_id, voters[0])
        assert await store.get_vote(comment_id, voters[0]) is None
        assert len(await store.list_votes(comment_id)) == 2

        await store.delete_votes_for_comment(comment_id)
        assert await store.list_votes(comment_id) == []

    @pytest.mark.asyncio
    async def test_delete_missing_vote_is_noop(self, store) -> None:
        await store.delete_vote(uuid4(), uuid4())


class TestNotifications:
    """Notification rows."""

    @pytest.mark.asyncio
    async def test_list_respects_limit_and_recipient(self, store) -> None:
        user_id = uuid4()
        for _ in range(4):
            await store.insert_notification(
                create_mention_notification(user_id, "alice", uuid4(), URL)
            )
        await store.insert_notification(
            create_mention_notification(uuid4(), "alice", uuid4(), URL)
        )

        listed = await store.list_notifications(user_id, 3)

        assert len(listed) == 3
        assert all(n.user_id == user_id for n in listed)

    @pytest.mark.asyncio
    async def test_mark_read(self, store) -> None:
        notification = create_mention_notification(uuid4(), "alice", uuid4(), URL)
        await store.insert_notification(notification)

        await store.mark_notification_read(notification)

        stored = await store.get_notification(notification.notification_id)
        assert stored.is_read is True
        assert stored.read_at is not None

    @pytest.mark.asyncio
    async def test_missing_notification(self, store) -> None:
        assert await store.get_notification(uuid4()) is None
