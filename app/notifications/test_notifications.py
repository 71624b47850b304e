import asyncio
from datetime import timedelta

from app.core.config import settings
from app.esign.schemas import SignatureStatus, SigningRole
from app.notifications.models import Notification
from app.notifications.schemas import NotificationType
from app.notifications.services import NotificationService
from app.testing_dependencies import (
    client,
    db_session,
    fakes,
    make_landlord,
    make_lease,
    make_signature_request,
    make_user,
)
from app.utils.general import utc_now


def _awaiting_landlord(db, **lease_kwargs):
    owner = make_user(db, "owner@acme.test", "Olivia Owner")
    tenant = make_user(db, "jamie@example.com", "Jamie Rivera")
    landlord = make_landlord(db, owner=owner)
    lease = make_lease(db, landlord=landlord, tenant=tenant, **lease_kwargs)
    make_signature_request(db, lease, status=SignatureStatus.SIGNED)
    db.commit()
    return owner, landlord, lease


def _reminders(db):
    db.expire_all()
    return db.query(Notification).filter_by(type=NotificationType.REMINDER.value).all()


def test_cron_requires_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", "s3cret")

    assert client.get("/api/cron/lease-signing-reminders").status_code == 401
    response = client.get(
        "/api/cron/lease-signing-reminders", headers={"Authorization": "Bearer wrong"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == {"error": "Unauthorized"}


def test_cron_sends_one_reminder_per_day(client, db_session, fakes, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", "s3cret")
    owner, landlord, lease = _awaiting_landlord(db_session)
    headers = {"Authorization": "Bearer s3cret"}

    response = client.get("/api/cron/lease-signing-reminders", headers=headers)
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "processed": 1,
        "results": [{"leaseId": lease.id, "landlordId": landlord.id, "success": True}],
    }

    reminders = _reminders(db_session)
    assert len(reminders) == 1
    assert reminders[0].user_id == owner.id
    assert reminders[0].title == "Lease Awaiting Your Signature"
    assert reminders[0].message == (
        "Jamie Rivera has signed the lease for Maple Court - Unit 4B. "
        "Please review and sign to complete the agreement."
    )
    assert reminders[0].meta_data == {"leaseId": lease.id}
    assert len(fakes.ses.sent) == 1

    # a second run on the same day skips the lease
    response = client.get("/api/cron/lease-signing-reminders", headers=headers)
    assert response.json() == {"success": True, "processed": 0, "results": []}
    assert len(_reminders(db_session)) == 1


def test_cron_skips_leases_not_awaiting_landlord(client, db_session):
    owner, landlord, lease = _awaiting_landlord(db_session)
    make_signature_request(db_session, lease, role=SigningRole.LANDLORD, status=SignatureStatus.SIGNED)
    make_lease(db_session, landlord=landlord, unit_name="Unit 9", status="pending")
    db_session.commit()

    response = client.get("/api/cron/lease-signing-reminders")
    assert response.status_code == 200
    assert response.json()["processed"] == 0


def test_cron_skips_old_leases(client, db_session):
    _, _, lease = _awaiting_landlord(db_session)
    lease.created_on = utc_now() - timedelta(days=settings.reminder_lookback_days + 1)
    db_session.commit()

    response = client.get("/api/cron/lease-signing-reminders")
    assert response.json()["processed"] == 0


def test_reminder_email_failure_is_swallowed(db_session, fakes):
    owner, landlord, lease = _awaiting_landlord(db_session)
    fakes.ses.fail = True
    service = NotificationService(db=db_session, email_service=fakes.email_service)

    results = asyncio.run(service.send_lease_signing_reminders())
    assert [result.success for result in results] == [True]
    assert len(_reminders(db_session)) == 1


def test_create_notification_without_landlord_skips_email(db_session, fakes):
    user = make_user(db_session, "someone@example.com", "Some One")
    db_session.commit()
    service = NotificationService(db=db_session, email_service=fakes.email_service)

    notification = asyncio.run(
        service.create_notification(
            user_id=user.id,
            type=NotificationType.MESSAGE,
            title="Hello",
            message="A message",
        )
    )
    assert notification.id is not None
    assert notification.is_read is False
    assert fakes.ses.sent == []
