### app/utils/pdf_utils.py

# Standard library imports
import base64
import binascii
import hashlib
import json
import re
import textwrap
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

# Third party imports
import pdfkit
from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader, PdfWriter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

# Local imports
from app.esign.schemas import SignerMetadata
from app.utils.logger import get_logger
from app.utils.s3_utils import ObjectStorage, StorageError

logger = get_logger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.+)$", re.DOTALL)

# Overlay layout in PDF points, origin bottom-left
SIGNATURE_X = 50
SIGNATURE_Y = 60
SIGNATURE_WIDTH = 200
CAPTION_Y = 140
TEXT_X = 270
TEXT_FONT_SIZE = 11
TEXT_LINE_HEIGHT = 14
AUDIT_FONT_SIZE = 10
AUDIT_LINE_HEIGHT = 12
AUDIT_WRAP_WIDTH = 95
PAGE_BOTTOM_MARGIN = 40

# Largest accepted signature image, in pixels per side
MAX_SIGNATURE_SIDE = 4000


class StampingError(Exception):
    """Raised when a signed document cannot be produced or stored."""


@dataclass
class StampResult:
    """URLs and hash of a stamped document"""
    signed_pdf_url: str
    audit_log_url: str
    document_hash: str


def decode_data_url(data_url: str) -> bytes:
    """
    Decode a `data:image/...;base64,` URL into image bytes.

    Raises:
        ValueError: If the URL is malformed, the payload is not an image or
            the image is larger than MAX_SIGNATURE_SIDE on either side
    """
    match = DATA_URL_PATTERN.match(data_url or "")
    if not match:
        raise ValueError("Signature must be a base64 image data URL")
    try:
        data = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("Signature data is not valid base64") from e

    try:
        with Image.open(BytesIO(data)) as image:
            width, height = image.size
            if width > MAX_SIGNATURE_SIDE or height > MAX_SIGNATURE_SIDE:
                raise ValueError(f"Signature image exceeds {MAX_SIGNATURE_SIDE}x{MAX_SIGNATURE_SIDE} pixels")
            image.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise ValueError("Signature data is not a readable image") from e
    return data


def compute_document_hash(pdf: bytes) -> str:
    """SHA-256 hex digest of the document bytes"""
    return hashlib.sha256(pdf).hexdigest()


class PdfRenderer:
    """HTML to PDF through wkhtmltopdf"""

    options = {
        "page-size": "A4",
        "margin-top": "20mm",
        "margin-bottom": "20mm",
        "margin-left": "15mm",
        "margin-right": "15mm",
        "print-media-type": "",
        "encoding": "UTF-8",
        "quiet": "",
    }

    def __init__(self, wkhtmltopdf_path: Optional[str] = None):
        self.wkhtmltopdf_path = wkhtmltopdf_path

    def render(self, html: str) -> bytes:
        configuration = (
            pdfkit.configuration(wkhtmltopdf=self.wkhtmltopdf_path)
            if self.wkhtmltopdf_path else None
        )
        return pdfkit.from_string(
            html, False, options=self.options, configuration=configuration
        )


def _signature_overlay(page_width: float, page_height: float, image: bytes, signer: SignerMetadata) -> bytes:
    """Single page carrying the signature image and signer block"""
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(page_width, page_height), invariant=1)

    c.setFont("Helvetica", 12)
    c.drawString(SIGNATURE_X, CAPTION_Y, "Signature")

    reader = ImageReader(BytesIO(image))
    img_width, img_height = reader.getSize()
    height = SIGNATURE_WIDTH * img_height / img_width
    c.drawImage(
        reader, SIGNATURE_X, SIGNATURE_Y,
        width=SIGNATURE_WIDTH, height=height, mask="auto",
    )

    lines = [
        f"{signer.role.value.capitalize()} Name: {signer.signer_name}",
        f"Email: {signer.signer_email}",
        f"IP: {signer.ip}",
        f"User Agent: {signer.user_agent}",
        f"Signed At: {signer.signed_at.isoformat()}",
    ]
    c.setFont("Helvetica", TEXT_FONT_SIZE)
    y = SIGNATURE_Y + height - 10
    for line in lines:
        for chunk in textwrap.wrap(line, 50) or [""]:
            c.drawString(TEXT_X, y, chunk)
            y -= TEXT_LINE_HEIGHT

    c.showPage()
    c.save()
    return buffer.getvalue()


def _audit_pages(page_width: float, page_height: float, audit: dict) -> bytes:
    """Pretty-printed audit record, continued over as many pages as it needs"""
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(page_width, page_height), invariant=1)

    c.setFont("Helvetica-Bold", 16)
    c.drawString(50, page_height - 70, "Audit Log")
    c.setFont("Courier", AUDIT_FONT_SIZE)

    y = page_height - 100
    for raw_line in json.dumps(audit, indent=2).splitlines():
        for line in textwrap.wrap(raw_line, AUDIT_WRAP_WIDTH, drop_whitespace=False) or [""]:
            if y < PAGE_BOTTOM_MARGIN:
                c.showPage()
                c.setFont("Courier", AUDIT_FONT_SIZE)
                y = page_height - 70
            c.drawString(50, y, line)
            y -= AUDIT_LINE_HEIGHT

    c.showPage()
    c.save()
    return buffer.getvalue()


def stamp_signature_on_pdf(base_pdf: bytes, signature_image: bytes, signer: SignerMetadata) -> bytes:
    """
    Overlay the signature on the last page of `base_pdf` and append the
    audit log. Identical inputs produce byte-identical output.
    """
    reader = PdfReader(BytesIO(base_pdf))
    if not reader.pages:
        raise ValueError("Base PDF has no pages")

    last_page = reader.pages[-1]
    width = float(last_page.mediabox.width)
    height = float(last_page.mediabox.height)

    overlay = PdfReader(BytesIO(_signature_overlay(width, height, signature_image, signer)))
    audit = PdfReader(BytesIO(_audit_pages(width, height, signer.audit_record())))

    writer = PdfWriter(clone_from=reader)
    writer.pages[-1].merge_page(overlay.pages[0])
    for page in audit.pages:
        writer.add_page(page)

    output = BytesIO()
    writer.write(output)
    return output.getvalue()


class SignatureStamper:
    """
    Produces the signed lease: stamps, hashes and stores the PDF together
    with a JSON copy of the audit record.
    """

    def __init__(self, storage: ObjectStorage):
        self.storage = storage

    @staticmethod
    def object_prefix(signer: SignerMetadata) -> str:
        landlord = signer.landlord_id if signer.landlord_id is not None else "unknown"
        return f"signed-leases/{landlord}/{signer.lease_id}"

    def stamp(self, base_pdf: bytes, signature_image: bytes, signer: SignerMetadata) -> StampResult:
        """
        Raises:
            StampingError: If stamping or either upload fails
        """
        try:
            signed_pdf = stamp_signature_on_pdf(base_pdf, signature_image, signer)
            document_hash = compute_document_hash(signed_pdf)

            ts = int(signer.signed_at.timestamp() * 1000)
            prefix = self.object_prefix(signer)
            audit_log = json.dumps(
                {**signer.audit_record(), "document_hash": document_hash}, indent=2
            ).encode("utf-8")

            pdf_object = self.storage.upload(signed_pdf, f"{prefix}-signed-{ts}.pdf", "application/pdf")
            audit_object = self.storage.upload(audit_log, f"{prefix}-audit-{ts}.json", "application/json")
        except StorageError as e:
            raise StampingError(str(e)) from e
        except Exception as e:
            logger.error("Failed to stamp signed lease", lease_id=signer.lease_id, error_message=str(e), exc_info=True)
            raise StampingError(f"Failed to stamp signed lease: {e}") from e

        logger.info(
            "Stamped signed lease",
            lease_id=signer.lease_id, role=signer.role.value, document_hash=document_hash,
        )
        return StampResult(
            signed_pdf_url=pdf_object.url,
            audit_log_url=audit_object.url,
            document_hash=document_hash,
        )
