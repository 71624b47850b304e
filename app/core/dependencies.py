# app/core/dependencies.py

"""
Providers for the external clients built once in the application lifespan.
Handlers receive them through Depends so tests can swap in fakes.
"""

from fastapi import Request

from app.utils.email_service import EmailService
from app.utils.event_sink import EventSink
from app.utils.pdf_utils import PdfRenderer, SignatureStamper
from app.utils.s3_utils import ObjectStorage


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_pdf_renderer(request: Request) -> PdfRenderer:
    return request.app.state.pdf_renderer


def get_stamper(request: Request) -> SignatureStamper:
    return request.app.state.stamper


def get_event_sink(request: Request) -> EventSink:
    return request.app.state.event_sink
