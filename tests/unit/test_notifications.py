"""Unit tests for the notification dispatcher."""

import uuid

import pytest

from civictrust.kernel.notifications import NotificationDispatcher


class TestNotificationDispatcher:

    @pytest.mark.asyncio
    async def test_dispatch_and_list(self, db_session, citizen):
        dispatcher = NotificationDispatcher(db_session)
        created = await dispatcher.dispatch(
            citizen.id,
            "identity_verification",
            "Hello",
            "Welcome",
            data={"k": "v"},
            source_module="identity",
        )

        assert created is not None
        notifications = await dispatcher.list_for_user(citizen.id)
        assert [n.id for n in notifications] == [created.id]
        assert notifications[0].data == {"k": "v"}
        assert notifications[0].is_read is False

    @pytest.mark.asyncio
    async def test_dispatch_failure_is_swallowed(self, db_session, citizen):
        dispatcher = NotificationDispatcher(db_session)
        # The dispatcher rolls back on failure, which expires loaded fixtures
        user_id = citizen.id

        result = await dispatcher.dispatch(user_id, "identity_verification", None, "Missing title")

        assert result is None
        assert await dispatcher.list_for_user(user_id) == []

    @pytest.mark.asyncio
    async def test_mark_read_only_own(self, db_session, citizen, other_citizen):
        dispatcher = NotificationDispatcher(db_session)
        created = await dispatcher.dispatch(citizen.id, "identity_verification", "T", "M")

        assert await dispatcher.mark_read(other_citizen.id, created.id) is None
        assert await dispatcher.mark_read(citizen.id, uuid.uuid4()) is None

        marked = await dispatcher.mark_read(citizen.id, created.id)
        assert marked.is_read is True
        assert await dispatcher.list_for_user(citizen.id, unread_only=True) == []
