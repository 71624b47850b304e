import base64
import logging
import os
from datetime import date, timedelta
from decimal import Decimal
from io import BytesIO

import pytest
from botocore.exceptions import ClientError
from dotenv import find_dotenv, load_dotenv
from fastapi.testclient import TestClient
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .core.db import Base, get_db
from .core.dependencies import (
    get_email_service,
    get_event_sink,
    get_pdf_renderer,
    get_stamper,
    get_storage,
)
from .core.jwt import create_access_token
from .esign.models import DocumentSignatureRequest
from .esign.schemas import SignatureStatus, SigningRole
from .landlords.models import Landlord, Property, Unit
from .leases.models import Lease
from .leases.schemas import LeaseStatus
from .main import lease_app as fast_api_app
from .users.models import User
from .utils.email_service import EmailService
from .utils.event_sink import EventSink
from .utils.general import expiry_from_now, generate_signing_token, utc_now
from .utils.pdf_utils import PdfRenderer, SignatureStamper
from .utils.s3_utils import ObjectStorage

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

env_file = find_dotenv(f'.env{os.getenv("ENV", "")}')
logger.info("Fetching env_file %s", env_file)
load_dotenv(env_file)

DATABASE_URL = "sqlite://"

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},  # For SQLite
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# --- Collaborator fakes ---

def _client_error(operation: str) -> ClientError:
    return ClientError({"Error": {"Code": "InternalError", "Message": "simulated failure"}}, operation)


class FakeS3Client:
    """Keeps put_object calls in memory"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.objects = {}

    def put_object(self, Bucket, Key, Body, ContentType):
        if self.fail:
            raise _client_error("PutObject")
        self.objects[Key] = {"body": Body, "content_type": ContentType, "bucket": Bucket}


class FakeSESClient:
    """Keeps send_raw_email calls in memory"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send_raw_email(self, Source, Destinations, RawMessage):
        if self.fail:
            raise _client_error("SendRawEmail")
        self.sent.append({"source": Source, "to": Destinations, "raw": RawMessage["Data"]})


class FakePdfRenderer(PdfRenderer):
    """Renders a small PDF with reportlab instead of wkhtmltopdf"""

    def __init__(self, fail: bool = False):
        super().__init__()
        self.fail = fail
        self.rendered = []

    def render(self, html: str) -> bytes:
        if self.fail:
            raise OSError("wkhtmltopdf exited with code 1")
        self.rendered.append(html)
        return make_pdf()


class RecordingEventSink(EventSink):
    """Trace sink that remembers what it emitted"""

    def __init__(self):
        super().__init__(ingest_url=None)
        self.events = []

    async def emit(self, location, message, data=None):
        self.events.append(self.build_event(location, message, data))
        await super().emit(location, message, data)


class Fakes:
    """The collaborators a test client is wired to"""

    def __init__(self):
        self.s3 = FakeS3Client()
        self.ses = FakeSESClient()
        self.storage = ObjectStorage(
            bucket_name="test-bucket", public_base_url="https://files.test", client=self.s3
        )
        self.email_service = EmailService(sender="noreply@leases.test", client=self.ses)
        self.renderer = FakePdfRenderer()
        self.stamper = SignatureStamper(self.storage)
        self.events = RecordingEventSink()


# --- Documents ---

def make_pdf(text: str = "Residential Lease Agreement", pages: int = 1) -> bytes:
    """Deterministic PDF built with reportlab"""
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    for page in range(pages):
        c.setFont("Helvetica", 14)
        c.drawString(72, 770, f"{text} ({page + 1})")
        c.showPage()
    c.save()
    return buffer.getvalue()


def make_signature_png(width: int = 300, height: int = 100) -> bytes:
    image = Image.new("RGBA", (width, height), (255, 255, 255, 0))
    for x in range(20, width - 20):
        image.putpixel((x, height // 2 + (x % 15) - 7), (0, 0, 0, 255))
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def make_signature_data_url() -> str:
    return "data:image/png;base64," + base64.b64encode(make_signature_png()).decode()


# --- Records ---

def make_user(db, email: str, name: str = None) -> User:
    user = User(email=email, name=name, is_active=True)
    db.add(user)
    db.flush()
    return user


def make_landlord(db, owner: User = None, subdomain: str = "acme", name: str = "Acme Rentals", **kwargs) -> Landlord:
    landlord = Landlord(
        name=name, subdomain=subdomain, owner_user_id=owner.id if owner else None, **kwargs
    )
    db.add(landlord)
    db.flush()
    return landlord


def make_lease(
    db,
    landlord: Landlord = None,
    tenant: User = None,
    property_name: str = "Maple Court",
    unit_name: str = "Unit 4B",
    unit_type: str = "apartment",
    end_date: date = date(2027, 1, 31),
    rent_amount: Decimal = Decimal("1850.00"),
    status: str = LeaseStatus.ACTIVE.value,
) -> Lease:
    prop = Property(landlord_id=landlord.id if landlord else None, name=property_name)
    db.add(prop)
    db.flush()
    unit = Unit(property_id=prop.id, name=unit_name, type=unit_type)
    db.add(unit)
    db.flush()
    lease = Lease(
        unit_id=unit.id,
        tenant_id=tenant.id if tenant else None,
        start_date=date(2026, 2, 1),
        end_date=end_date,
        rent_amount=rent_amount,
        billing_day_of_month=1,
        status=status,
    )
    db.add(lease)
    db.flush()
    return lease


def make_signature_request(
    db,
    lease: Lease,
    role: SigningRole = SigningRole.TENANT,
    status: SignatureStatus = SignatureStatus.SENT,
    expires_in_hours: int = 24,
    recipient_name: str = "Jamie Rivera",
    recipient_email: str = "jamie@example.com",
) -> DocumentSignatureRequest:
    request = DocumentSignatureRequest(
        lease_id=lease.id,
        token=generate_signing_token(),
        role=role.value,
        status=status.value,
        recipient_name=recipient_name,
        recipient_email=recipient_email,
        expires_at=expiry_from_now(expires_in_hours),
    )
    if status == SignatureStatus.SIGNED:
        request.signed_at = utc_now() - timedelta(hours=1)
        request.signer_name = recipient_name
        request.signer_email = recipient_email
    db.add(request)
    db.flush()
    return request


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user.email})}"}


# --- Fixtures ---

@pytest.fixture()
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestSessionLocal()
    try:
        yield db
        logger.info("Committing Test DB Transaction")
        db.commit()
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def fakes():
    return Fakes()


@pytest.fixture()
def client(db_session, fakes):

    # Override FastAPI's dependency to use the test database session
    def override_get_db():
        yield db_session

    fast_api_app.dependency_overrides[get_db] = override_get_db
    fast_api_app.dependency_overrides[get_storage] = lambda: fakes.storage
    fast_api_app.dependency_overrides[get_email_service] = lambda: fakes.email_service
    fast_api_app.dependency_overrides[get_pdf_renderer] = lambda: fakes.renderer
    fast_api_app.dependency_overrides[get_stamper] = lambda: fakes.stamper
    fast_api_app.dependency_overrides[get_event_sink] = lambda: fakes.events
    yield TestClient(fast_api_app)
    fast_api_app.dependency_overrides.clear()
