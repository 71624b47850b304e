import base64
import json
import re
import threading
from datetime import datetime, timezone

import pytest
from PIL import Image

from app.esign.models import DocumentSignatureRequest
from app.esign.schemas import SignatureStatus, SignerMetadata, SigningRole
from app.esign.utils import render_lease_html
from app.testing_dependencies import (
    client,
    db_session,
    fakes,
    make_landlord,
    make_lease,
    make_pdf,
    make_signature_data_url,
    make_signature_png,
    make_signature_request,
    make_user,
)
from app.utils.pdf_utils import compute_document_hash, decode_data_url, stamp_signature_on_pdf


def _setup(db, with_owner=True, end_date=None, **lease_kwargs):
    owner = make_user(db, "owner@acme.test", "Olivia Owner") if with_owner else None
    tenant = make_user(db, "jamie@example.com", "Jamie Rivera")
    landlord = make_landlord(db, owner=owner)
    lease = make_lease(db, landlord=landlord, tenant=tenant, end_date=end_date, **lease_kwargs)
    request = make_signature_request(db, lease)
    db.commit()
    return landlord, tenant, lease, request


def _payload(**overrides):
    payload = {
        "signatureDataUrl": make_signature_data_url(),
        "signerName": "Jamie Rivera",
        "signerEmail": "jamie@example.com",
        "consent": True,
    }
    payload.update(overrides)
    return payload


def _requests_for(db, lease_id, role):
    db.expire_all()
    return (
        db.query(DocumentSignatureRequest)
        .filter_by(lease_id=lease_id, role=role.value)
        .order_by(DocumentSignatureRequest.id)
        .all()
    )


# --- Signing session ---

def test_get_session_unknown_token(client):
    response = client.get("/api/sign/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"]["message"] == "Not found"


def test_get_session_expired_link(client, db_session):
    _, _, lease, _ = _setup(db_session)
    expired = make_signature_request(db_session, lease, expires_in_hours=-1)
    db_session.commit()

    response = client.get(f"/api/sign/{expired.token}")
    assert response.status_code == 410
    assert response.json()["detail"]["message"] == "Link expired"


def test_get_session_returns_rendered_lease(client, db_session):
    _, _, lease, request = _setup(db_session)

    response = client.get(f"/api/sign/{request.token}")
    assert response.status_code == 200
    body = response.json()
    assert body["leaseId"] == lease.id
    assert body["role"] == "tenant"
    assert body["recipientName"] == "Jamie Rivera"
    assert body["recipientEmail"] == "jamie@example.com"
    assert "Acme Rentals" in body["leaseHtml"]
    assert "Maple Court - Unit 4B (apartment)" in body["leaseHtml"]
    assert "Month-to-Month" in body["leaseHtml"]
    assert "$1,850" in body["leaseHtml"]
    assert "/sig_tenant/" in body["leaseHtml"]


# --- Lease rendering ---

def test_render_lease_html_fixed_term_and_fallbacks(db_session):
    lease = make_lease(db_session, landlord=None, tenant=None, end_date=datetime(2027, 1, 31).date())
    db_session.commit()

    html = render_lease_html(lease, today=datetime(2026, 3, 5).date())
    assert "January 31, 2027" in html
    assert "February 1, 2026" in html
    assert "March 5, 2026" in html
    assert "Month-to-Month" not in html
    # no landlord: the property name stands in, no tenant: generic label
    assert "<span class=\"field\">Maple Court</span> (\"Landlord\")" in html
    assert "<span class=\"field\">Tenant</span> (\"Tenant\")" in html


def test_render_lease_html_defaults_to_utc_date(db_session, monkeypatch):
    lease = make_lease(db_session, landlord=None, tenant=None)
    db_session.commit()
    monkeypatch.setattr(
        "app.esign.utils.utc_now", lambda: datetime(2026, 3, 5, 23, 30, tzinfo=timezone.utc)
    )

    assert "March 5, 2026" in render_lease_html(lease)


# --- Submission validation ---

def test_submit_requires_consent(client, db_session, fakes):
    _, _, _, request = _setup(db_session)

    response = client.post(f"/api/sign/{request.token}", json=_payload(consent=False))
    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Missing signature, name, email, or consent"
    assert fakes.s3.objects == {}


def test_submit_blank_fields_rejected(client, db_session):
    _, _, _, request = _setup(db_session)

    response = client.post(f"/api/sign/{request.token}", json=_payload(signerName="   "))
    assert response.status_code == 400


def test_submit_invalid_json_body(client, db_session):
    _, _, _, request = _setup(db_session)

    response = client.post(
        f"/api/sign/{request.token}",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 400


def test_submit_validation_runs_before_token_lookup(client):
    response = client.post("/api/sign/unknown", json={})
    assert response.status_code == 400


def test_submit_unknown_token(client):
    response = client.post("/api/sign/unknown", json=_payload())
    assert response.status_code == 404


def test_submit_expired_token(client, db_session):
    _, _, lease, _ = _setup(db_session)
    expired = make_signature_request(db_session, lease, expires_in_hours=-2)
    db_session.commit()

    response = client.post(f"/api/sign/{expired.token}", json=_payload())
    assert response.status_code == 410


def test_submit_invalid_signature_image(client, db_session, fakes):
    _, _, _, request = _setup(db_session)

    response = client.post(
        f"/api/sign/{request.token}",
        json=_payload(signatureDataUrl="data:image/png;base64,bm90IGFuIGltYWdl"),
    )
    assert response.status_code == 400
    assert fakes.s3.objects == {}


def test_submit_oversized_signature_image(client, db_session, fakes):
    _, _, lease, request = _setup(db_session)
    oversized = "data:image/png;base64," + base64.b64encode(make_signature_png(width=4001, height=20)).decode()

    response = client.post(f"/api/sign/{request.token}", json=_payload(signatureDataUrl=oversized))
    assert response.status_code == 400
    assert fakes.s3.objects == {}
    assert _requests_for(db_session, lease.id, SigningRole.TENANT)[0].status == SignatureStatus.SENT.value


def test_decode_rejects_decompression_bomb(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    data_url = make_signature_data_url()

    with pytest.raises(ValueError):
        decode_data_url(data_url)


def test_expired_link_is_gone_even_when_signed(client, db_session):
    _, _, lease, _ = _setup(db_session)
    signed = make_signature_request(db_session, lease, status=SignatureStatus.SIGNED, expires_in_hours=-1)
    db_session.commit()

    assert client.get(f"/api/sign/{signed.token}").status_code == 410
    response = client.post(f"/api/sign/{signed.token}", json=_payload())
    assert response.status_code == 410
    assert response.json()["detail"]["message"] == "Link expired"


# --- Successful signatures ---

def test_tenant_signature_hands_off_to_landlord(client, db_session, fakes):
    landlord, _, lease, request = _setup(db_session)

    response = client.post(
        f"/api/sign/{request.token}",
        json=_payload(),
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "pytest-browser"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["signedPdfUrl"].startswith(
        f"https://files.test/signed-leases/{landlord.id}/{lease.id}-signed-"
    )
    assert re.fullmatch(r"[0-9a-f]{64}", body["documentHash"])

    pdf_key = body["signedPdfUrl"].replace("https://files.test/", "")
    stored_pdf = fakes.s3.objects[pdf_key]
    assert stored_pdf["content_type"] == "application/pdf"
    assert compute_document_hash(stored_pdf["body"]) == body["documentHash"]

    audit_key = body["auditLogUrl"].replace("https://files.test/", "")
    audit = json.loads(fakes.s3.objects[audit_key]["body"])
    assert audit["ip"] == "203.0.113.7"
    assert audit["user_agent"] == "pytest-browser"
    assert audit["role"] == "tenant"
    assert audit["lease_id"] == lease.id
    assert audit["document_hash"] == body["documentHash"]

    tenant_requests = _requests_for(db_session, lease.id, SigningRole.TENANT)
    signed = tenant_requests[0]
    assert signed.status == SignatureStatus.SIGNED.value
    assert signed.signer_ip == "203.0.113.7"
    assert signed.document_hash == body["documentHash"]
    assert lease.tenant_signed_at is not None
    assert lease.landlord_signed_at is None

    landlord_requests = _requests_for(db_session, lease.id, SigningRole.LANDLORD)
    assert len(landlord_requests) == 1
    assert landlord_requests[0].status == SignatureStatus.SENT.value
    assert landlord_requests[0].recipient_email == "owner@acme.test"
    assert landlord_requests[0].token != request.token
    assert len(landlord_requests[0].token) == 48

    assert len(fakes.ses.sent) == 1
    assert fakes.ses.sent[0]["to"] == ["owner@acme.test"]
    assert "Lease ready for your signature" in fakes.ses.sent[0]["raw"]

    locations = [event["location"] for event in fakes.events.events]
    assert "esign.submit" in locations
    assert "esign.handoff" in locations


def test_second_submission_rejected(client, db_session):
    _, _, lease, request = _setup(db_session)

    assert client.post(f"/api/sign/{request.token}", json=_payload()).status_code == 200
    first = _requests_for(db_session, lease.id, SigningRole.TENANT)[0]
    signed_at, document_hash = first.signed_at, first.document_hash

    response = client.post(
        f"/api/sign/{request.token}",
        json=_payload(signerName="Someone Else", signerEmail="else@example.com"),
    )
    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Already signed"

    after = _requests_for(db_session, lease.id, SigningRole.TENANT)[0]
    assert after.signed_at == signed_at
    assert after.signer_name == "Jamie Rivera"
    assert after.signer_email == "jamie@example.com"
    assert after.document_hash == document_hash
    assert len(_requests_for(db_session, lease.id, SigningRole.LANDLORD)) == 1


def test_rendering_and_stamping_run_off_the_event_loop(client, db_session, fakes, monkeypatch):
    _, _, _, request = _setup(db_session)
    loop_threads, worker_threads = set(), []
    real_render, real_stamp, real_emit = fakes.renderer.render, fakes.stamper.stamp, fakes.events.emit

    def render(html):
        worker_threads.append(threading.get_ident())
        return real_render(html)

    def stamp(base_pdf, image, signer):
        worker_threads.append(threading.get_ident())
        return real_stamp(base_pdf, image, signer)

    async def emit(location, message, data=None):
        loop_threads.add(threading.get_ident())
        await real_emit(location, message, data)

    monkeypatch.setattr(fakes.renderer, "render", render)
    monkeypatch.setattr(fakes.stamper, "stamp", stamp)
    monkeypatch.setattr(fakes.events, "emit", emit)

    assert client.post(f"/api/sign/{request.token}", json=_payload()).status_code == 200
    assert len(worker_threads) == 2
    assert loop_threads
    assert not loop_threads.intersection(worker_threads)


def test_concurrent_submission_loses_conditional_update(client, db_session, fakes):
    _, _, lease, request = _setup(db_session)
    real_stamp = fakes.stamper.stamp

    def stamp_while_another_submission_wins(base_pdf, image, signer):
        result = real_stamp(base_pdf, image, signer)
        db_session.query(DocumentSignatureRequest).filter_by(token=request.token).update(
            {"status": SignatureStatus.SIGNED.value}, synchronize_session=False
        )
        db_session.commit()
        return result

    fakes.stamper.stamp = stamp_while_another_submission_wins

    response = client.post(f"/api/sign/{request.token}", json=_payload())
    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Already signed"
    assert _requests_for(db_session, lease.id, SigningRole.LANDLORD) == []


def test_storage_failure_leaves_no_partial_state(client, db_session, fakes):
    _, _, lease, request = _setup(db_session)
    fakes.s3.fail = True

    response = client.post(f"/api/sign/{request.token}", json=_payload())
    assert response.status_code == 500

    tenant_requests = _requests_for(db_session, lease.id, SigningRole.TENANT)
    assert tenant_requests[0].status == SignatureStatus.SENT.value
    assert tenant_requests[0].signed_pdf_url is None
    assert _requests_for(db_session, lease.id, SigningRole.LANDLORD) == []


def test_renderer_failure_returns_500(client, db_session, fakes):
    _, _, lease, request = _setup(db_session)
    fakes.renderer.fail = True

    response = client.post(f"/api/sign/{request.token}", json=_payload())
    assert response.status_code == 500
    assert _requests_for(db_session, lease.id, SigningRole.TENANT)[0].status == SignatureStatus.SENT.value


def test_email_failure_does_not_fail_signature(client, db_session, fakes):
    _, _, lease, request = _setup(db_session)
    fakes.ses.fail = True

    response = client.post(f"/api/sign/{request.token}", json=_payload())
    assert response.status_code == 200
    assert len(_requests_for(db_session, lease.id, SigningRole.LANDLORD)) == 1


def test_no_duplicate_landlord_request(client, db_session, fakes):
    _, _, lease, request = _setup(db_session)
    make_signature_request(
        db_session, lease, role=SigningRole.LANDLORD,
        recipient_name="Acme Rentals", recipient_email="owner@acme.test",
    )
    db_session.commit()

    assert client.post(f"/api/sign/{request.token}", json=_payload()).status_code == 200
    assert len(_requests_for(db_session, lease.id, SigningRole.LANDLORD)) == 1
    assert fakes.ses.sent == []


def test_no_handoff_without_landlord_owner(client, db_session):
    _, _, lease, request = _setup(db_session, with_owner=False)

    assert client.post(f"/api/sign/{request.token}", json=_payload()).status_code == 200
    assert _requests_for(db_session, lease.id, SigningRole.LANDLORD) == []


def test_landlord_signature_fully_executes_lease(client, db_session, fakes):
    _, _, lease, request = _setup(db_session)
    assert client.post(f"/api/sign/{request.token}", json=_payload()).status_code == 200
    landlord_request = _requests_for(db_session, lease.id, SigningRole.LANDLORD)[0]

    response = client.post(
        f"/api/sign/{landlord_request.token}",
        json=_payload(signerName="Olivia Owner", signerEmail="owner@acme.test"),
    )
    assert response.status_code == 200

    db_session.expire_all()
    assert lease.landlord_signed_at is not None
    assert lease.is_fully_executed
    # the landlord signing does not trigger any further hand-off
    assert len(_requests_for(db_session, lease.id, SigningRole.LANDLORD)) == 1
    assert len(fakes.ses.sent) == 1


# --- Stamping ---

def _signer(**overrides):
    values = dict(
        token="a" * 48,
        role=SigningRole.TENANT,
        signer_name="Jamie Rivera",
        signer_email="jamie@example.com",
        signed_at=datetime(2026, 3, 5, 14, 30, tzinfo=timezone.utc),
        ip="203.0.113.7",
        user_agent="pytest-browser",
        lease_id=7,
        landlord_id=3,
    )
    values.update(overrides)
    return SignerMetadata(**values)


def test_document_hash_is_stable_for_identical_input():
    base_pdf = make_pdf()
    image = make_signature_png()

    first = stamp_signature_on_pdf(base_pdf, image, _signer())
    second = stamp_signature_on_pdf(base_pdf, image, _signer())
    assert compute_document_hash(first) == compute_document_hash(second)


def test_document_hash_changes_with_audit_fields():
    base_pdf = make_pdf()
    image = make_signature_png()

    original = compute_document_hash(stamp_signature_on_pdf(base_pdf, image, _signer()))
    other_ip = compute_document_hash(stamp_signature_on_pdf(base_pdf, image, _signer(ip="198.51.100.1")))
    assert original != other_ip


def test_stamped_pdf_appends_audit_page():
    from io import BytesIO

    from pypdf import PdfReader

    stamped = stamp_signature_on_pdf(make_pdf(pages=2), make_signature_png(), _signer())
    reader = PdfReader(BytesIO(stamped))
    assert len(reader.pages) == 3
    assert "Audit Log" in reader.pages[-1].extract_text()
    assert "Tenant Name: Jamie Rivera" in reader.pages[1].extract_text()


def test_stamping_merges_onto_writer_pages(recwarn):
    stamp_signature_on_pdf(make_pdf(), make_signature_png(), _signer())
    assert not [w for w in recwarn if "not assigned to a writer" in str(w.message)]
