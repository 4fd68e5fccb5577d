"""Unit tests for the identity verification workflow."""

import asyncio

import pytest
from sqlalchemy import func, select

from civictrust.engines.verification import VerificationWorkflow, can_transition, valid_transitions
from civictrust.kernel.errors import InvalidStateError, NotFoundError, ValidationError
from civictrust.kernel.events import EventStore
from civictrust.kernel.models import (
    EventType,
    IdentityVerification,
    Notification,
    UserPermission,
    VerificationLevel,
    VerificationState,
)
from civictrust.kernel.notifications import NotificationDispatcher
from civictrust.kernel.permissions import Capability, PermissionService, VERIFIED_CITIZEN_BUNDLE


async def _count(session, model, *conditions):
    result = await session.execute(select(func.count(model.id)).where(*conditions))
    return result.scalar_one()


async def _notifications(session, user_id):
    result = await session.execute(select(Notification).where(Notification.user_id == user_id))
    return list(result.scalars().all())


class TestTransitions:

    def test_pending_can_be_decided(self):
        assert can_transition("pending", "approved")
        assert can_transition("pending", "rejected")

    def test_decided_states_are_terminal(self):
        assert valid_transitions("approved") == []
        assert valid_transitions("rejected") == []
        assert not can_transition("approved", "rejected")
        assert not can_transition("rejected", "pending")

    def test_valid_transitions_from_pending(self):
        assert valid_transitions("pending") == ["approved", "rejected"]


class TestSubmit:

    @pytest.mark.asyncio
    async def test_terms_must_be_agreed(self, db_session, citizen):
        with pytest.raises(ValidationError) as exc_info:
            await VerificationWorkflow(db_session).submit(citizen.id, "citizen@example.com", False)
        assert exc_info.value.code == "terms_not_agreed"

    @pytest.mark.asyncio
    async def test_invalid_email(self, db_session, citizen):
        with pytest.raises(ValidationError) as exc_info:
            await VerificationWorkflow(db_session).submit(citizen.id, "not-an-email", True)
        assert exc_info.value.code == "invalid_email"

    @pytest.mark.asyncio
    async def test_creates_pending_record(self, db_session, citizen):
        record, created = await VerificationWorkflow(db_session).submit(
            citizen.id, "citizen@example.com", True
        )

        assert created is True
        assert record.state == VerificationState.PENDING
        assert record.user_id == citizen.id
        assert record.terms_agreed is True
        assert record.reviewer_id is None
        assert record.decided_at is None
        assert await EventStore(db_session).count_events(
            entity_type="identity_verification",
            entity_id=record.id,
            event_type=EventType.VERIFICATION_SUBMITTED,
        ) == 1

    @pytest.mark.asyncio
    async def test_submit_is_idempotent_while_pending(self, db_session, citizen):
        workflow = VerificationWorkflow(db_session)
        first, created_first = await workflow.submit(citizen.id, "citizen@example.com", True)
        second, created_second = await workflow.submit(citizen.id, "other@example.com", True)

        assert created_first is True
        assert created_second is False
        assert second.id == first.id
        assert second.submitted_email == "citizen@example.com"
        assert await _count(
            db_session,
            IdentityVerification,
            IdentityVerification.user_id == citizen.id,
        ) == 1

    @pytest.mark.asyncio
    async def test_resubmit_after_rejection_creates_new_record(self, db_session, citizen, reviewer):
        workflow = VerificationWorkflow(db_session)
        rejected, _ = await workflow.submit(citizen.id, "citizen@example.com", True)
        await workflow.reject(rejected.id, reviewer.id, "Name does not match")

        again, created = await workflow.submit(citizen.id, "citizen@example.com", True)

        assert created is True
        assert again.id != rejected.id
        assert again.state == VerificationState.PENDING

    @pytest.mark.asyncio
    async def test_submit_after_approval_returns_approved_record(self, db_session, citizen, reviewer):
        workflow = VerificationWorkflow(db_session)
        record, _ = await workflow.submit(citizen.id, "citizen@example.com", True)
        await workflow.approve(record.id, reviewer.id)

        again, created = await workflow.submit(citizen.id, "citizen@example.com", True)

        assert created is False
        assert again.id == record.id
        assert again.state == VerificationState.APPROVED


class TestApprove:

    @pytest.mark.asyncio
    async def test_approve_grants_bundle_and_notifies(self, db_session, citizen, reviewer):
        workflow = VerificationWorkflow(db_session)
        record, _ = await workflow.submit(citizen.id, "citizen@example.com", True)

        approved = await workflow.approve(record.id, reviewer.id)

        assert approved.state == VerificationState.APPROVED
        assert approved.reviewer_id == reviewer.id
        assert approved.decided_at is not None
        assert approved.rejection_reason is None

        service = PermissionService(db_session)
        for capability in VERIFIED_CITIZEN_BUNDLE:
            assert await service.check(citizen.id, capability) is True
        assert await service.check(citizen.id, Capability.MODERATE_COMMENTS) is False

        notifications = await _notifications(db_session, citizen.id)
        assert len(notifications) == 1
        assert notifications[0].title == "Identity verification approved"
        assert notifications[0].data["verification_id"] == str(record.id)
        assert notifications[0].source_module == "identity"

    @pytest.mark.asyncio
    async def test_approve_twice_is_rejected_without_side_effects(self, db_session, citizen, reviewer):
        workflow = VerificationWorkflow(db_session)
        record, _ = await workflow.submit(citizen.id, "citizen@example.com", True)
        first = await workflow.approve(record.id, reviewer.id)
        decided_at = first.decided_at

        with pytest.raises(InvalidStateError) as exc_info:
            await workflow.approve(record.id, reviewer.id)

        assert exc_info.value.code == "already_decided"
        assert exc_info.value.current.state == VerificationState.APPROVED
        assert exc_info.value.current.decided_at == decided_at
        assert len(await _notifications(db_session, citizen.id)) == 1
        assert await _count(
            db_session,
            UserPermission,
            UserPermission.user_id == citizen.id,
        ) == len(VERIFIED_CITIZEN_BUNDLE)

    @pytest.mark.asyncio
    async def test_approve_unknown(self, db_session, reviewer):
        import uuid

        with pytest.raises(NotFoundError):
            await VerificationWorkflow(db_session).approve(uuid.uuid4(), reviewer.id)

    @pytest.mark.asyncio
    async def test_concurrent_approvals_have_one_winner(self, session_factory, db_session, citizen, reviewer):
        record, _ = await VerificationWorkflow(db_session).submit(
            citizen.id, "citizen@example.com", True
        )
        await db_session.commit()

        async def approve():
            async with session_factory() as session:
                return await VerificationWorkflow(session).approve(record.id, reviewer.id)

        results = await asyncio.gather(approve(), approve(), return_exceptions=True)

        winners = [r for r in results if isinstance(r, IdentityVerification)]
        losers = [r for r in results if isinstance(r, InvalidStateError)]
        assert len(winners) == 1
        assert len(losers) == 1

        async with session_factory() as session:
            assert len(await _notifications(session, citizen.id)) == 1
            assert await _count(
                session,
                UserPermission,
                UserPermission.user_id == citizen.id,
            ) == len(VERIFIED_CITIZEN_BUNDLE)


class TestReject:

    @pytest.mark.asyncio
    async def test_reason_required(self, db_session, citizen, reviewer):
        workflow = VerificationWorkflow(db_session)
        record, _ = await workflow.submit(citizen.id, "citizen@example.com", True)

        with pytest.raises(ValidationError) as exc_info:
            await workflow.reject(record.id, reviewer.id, "   ")
        assert exc_info.value.code == "reason_required"

    @pytest.mark.asyncio
    async def test_reject_notifies_with_reason(self, db_session, citizen, reviewer):
        workflow = VerificationWorkflow(db_session)
        record, _ = await workflow.submit(citizen.id, "citizen@example.com", True)

        rejected = await workflow.reject(record.id, reviewer.id, "Document is expired")

        assert rejected.state == VerificationState.REJECTED
        assert rejected.rejection_reason == "Document is expired"
        assert rejected.reviewer_id == reviewer.id
        assert await PermissionService(db_session).list_user_permissions(citizen.id) == []

        notifications = await _notifications(db_session, citizen.id)
        assert len(notifications) == 1
        assert notifications[0].title == "Identity verification rejected"
        assert "Document is expired" in notifications[0].message
        assert notifications[0].data["reason"] == "Document is expired"

    @pytest.mark.asyncio
    async def test_reject_after_approve(self, db_session, citizen, reviewer):
        workflow = VerificationWorkflow(db_session)
        record, _ = await workflow.submit(citizen.id, "citizen@example.com", True)
        await workflow.approve(record.id, reviewer.id)

        with pytest.raises(InvalidStateError) as exc_info:
            await workflow.reject(record.id, reviewer.id, "Changed my mind")

        assert exc_info.value.current.state == VerificationState.APPROVED
        assert exc_info.value.current.rejection_reason is None


class TestStatus:

    @pytest.mark.asyncio
    async def test_status_without_submissions(self, db_session, citizen):
        status = await VerificationWorkflow(db_session).status(citizen.id)

        assert status.is_verified is False
        assert status.verification_level == VerificationLevel.NONE
        assert status.permissions == {c.value: False for c in VERIFIED_CITIZEN_BUNDLE}
        assert status.verified_at is None

    @pytest.mark.asyncio
    async def test_status_while_pending(self, db_session, citizen):
        workflow = VerificationWorkflow(db_session)
        await workflow.submit(citizen.id, "citizen@example.com", True)

        status = await workflow.status(citizen.id)
        assert status.is_verified is False

    @pytest.mark.asyncio
    async def test_status_after_approval(self, db_session, citizen, reviewer):
        workflow = VerificationWorkflow(db_session)
        record, _ = await workflow.submit(citizen.id, "citizen@example.com", True)
        approved = await workflow.approve(record.id, reviewer.id)

        status = await workflow.status(citizen.id)

        assert status.is_verified is True
        assert status.verification_level == VerificationLevel.GOVERNMENT
        assert all(status.permissions.values())
        assert status.verified_at is not None
        assert status.verified_at.replace(tzinfo=None) == approved.decided_at.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_status_reflects_revoke(self, db_session, citizen, reviewer):
        workflow = VerificationWorkflow(db_session)
        record, _ = await workflow.submit(citizen.id, "citizen@example.com", True)
        await workflow.approve(record.id, reviewer.id)
        await PermissionService(db_session).revoke(citizen.id, Capability.CAN_VOTE)

        status = await workflow.status(citizen.id)

        assert status.is_verified is True
        assert status.permissions["can_vote"] is False
        assert status.permissions["can_comment"] is True

    @pytest.mark.asyncio
    async def test_status_after_rejection(self, db_session, citizen, reviewer):
        workflow = VerificationWorkflow(db_session)
        record, _ = await workflow.submit(citizen.id, "citizen@example.com", True)
        await workflow.reject(record.id, reviewer.id, "Blurry photo")

        status = await workflow.status(citizen.id)

        assert status.is_verified is False
        assert status.verification_level == VerificationLevel.NONE
        assert not any(status.permissions.values())


class TestQueue:

    @pytest.mark.asyncio
    async def test_queue_is_oldest_first(self, db_session, citizen, other_citizen, reviewer):
        workflow = VerificationWorkflow(db_session)
        first, _ = await workflow.submit(citizen.id, "citizen@example.com", True)
        second, _ = await workflow.submit(other_citizen.id, "neighbour@example.com", True)

        items, total = await workflow.list_queue()
        assert total == 2
        assert [v.id for v in items] == [first.id, second.id]

        await workflow.approve(first.id, reviewer.id)

        items, total = await workflow.list_queue(VerificationState.PENDING)
        assert total == 1
        assert items[0].id == second.id

        items, total = await workflow.list_queue(VerificationState.APPROVED)
        assert total == 1
        assert items[0].id == first.id

    @pytest.mark.asyncio
    async def test_queue_pagination(self, db_session, citizen, other_citizen):
        workflow = VerificationWorkflow(db_session)
        await workflow.submit(citizen.id, "citizen@example.com", True)
        second, _ = await workflow.submit(other_citizen.id, "neighbour@example.com", True)

        items, total = await workflow.list_queue(limit=1, offset=1)
        assert total == 2
        assert [v.id for v in items] == [second.id]


class _BrokenDispatcher(NotificationDispatcher):
    """Dispatcher whose writes violate the notifications schema."""

    async def dispatch(self, user_id, type, title, message, data=None, source_module=None):
        return await super().dispatch(user_id, type, None, message, data, source_module)


class TestNotificationFailure:

    @pytest.mark.asyncio
    async def test_failed_notification_keeps_approval(self, session_factory, db_session, citizen, reviewer):
        record, _ = await VerificationWorkflow(db_session).submit(
            citizen.id, "citizen@example.com", True
        )
        await db_session.commit()

        async with session_factory() as session:
            workflow = VerificationWorkflow(session, dispatcher=_BrokenDispatcher(session))
            approved = await workflow.approve(record.id, reviewer.id)
        assert approved.state == VerificationState.APPROVED

        async with session_factory() as session:
            stored = await VerificationWorkflow(session).get(record.id)
            assert stored.state == VerificationState.APPROVED
            assert await PermissionService(session).check(citizen.id, Capability.CAN_VOTE) is True
            assert await _notifications(session, citizen.id) == []
