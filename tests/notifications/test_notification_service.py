"""Tests for NotificationService."""

from uuid import uuid4

import pytest

from marginalia.notifications.models import create_mention_notification
from marginalia.notifications.service import (
    NotificationNotFoundError,
    NotificationService,
)


def mention_for(user_id):
    return create_mention_notification(
        recipient_id=user_id,
        author_name="alice",
        comment_id=uuid4(),
        url="https://example.com",
    )


@pytest.mark.asyncio
async def test_list_is_capped_and_newest_first(store) -> None:
    user_id = uuid4()
    created = [mention_for(user_id) for _ in range(5)]
    for notification in created:
        await store.insert_notification(notification)
    await store.insert_notification(mention_for(uuid4()))

    service = NotificationService(store, list_limit=3)
    listed = await service.list_for_user(user_id)

    assert [n.notification_id for n in listed] == [
        n.notification_id for n in reversed(created[-3:])
    ]


@pytest.mark.asyncio
async def test_mark_read(store) -> None:
    user_id = uuid4()
    notification = mention_for(user_id)
    await store.insert_notification(notification)

    service = NotificationService(store)
    updated = await service.mark_read(user_id, notification.notification_id)

    assert updated.is_read is True
    stored = await store.get_notification(notification.notification_id)
    assert stored.is_read is True
    assert stored.read_at is not None


@pytest.mark.asyncio
async def test_mark_read_is_idempotent(store) -> None:
    user_id = uuid4()
    notification = mention_for(user_id)
    await store.insert_notification(notification)
    service = NotificationService(store)

    first = await service.mark_read(user_id, notification.notification_id)
    second = await service.mark_read(user_id, notification.notification_id)

    assert first.is_read is True
    assert second.is_read is True
    assert second.read_at is not None


@pytest.mark.asyncio
async def test_foreign_notification_looks_missing(store) -> None:
    notification = mention_for(uuid4())
    await store.insert_notification(notification)

    service = NotificationService(store)
    with pytest.raises(NotificationNotFoundError):
        await service.mark_read(uuid4(), notification.notification_id)

    stored = await store.get_notification(notification.notification_id)
    assert stored.is_read is False


@pytest.mark.asyncio
async def test_unknown_notification(store) -> None:
    with pytest.raises(NotificationNotFoundError):
        await NotificationService(store).mark_read(uuid4(), uuid4())
