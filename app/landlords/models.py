# app/landlords/models.py

from typing import List, Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db import Base
from app.users.models import AuditMixin, User


class Landlord(Base, AuditMixin):
    """
    A landlord account. Every multi-tenant query is scoped by it and it owns
    the branded subdomain used for the public portal.
    """

    __tablename__ = "landlords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    subdomain: Mapped[str] = mapped_column(String(63), unique=True, index=True)
    custom_domain: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    owner_user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )

    # Branding
    logo_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    primary_color: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    owner: Mapped[Optional[User]] = relationship(foreign_keys=[owner_user_id])
    properties: Mapped[List["Property"]] = relationship(back_populates="landlord")

    def to_dict(self):
        """Convert the Landlord model to a dictionary"""
        return {
            "id": self.id,
            "name": self.name,
            "subdomain": self.subdomain,
        }


class Property(Base, AuditMixin):
    """
    Property model
    """

    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    landlord_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("landlords.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255))

    landlord: Mapped[Optional[Landlord]] = relationship(back_populates="properties")
    units: Mapped[List["Unit"]] = relationship(back_populates="property")


class Unit(Base, AuditMixin):
    """
    Unit model
    """

    __tablename__ = "units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"))
    name: Mapped[str] = mapped_column(String(128))
    type: Mapped[str] = mapped_column(String(64), comment="apartment, room, house, ...")

    property: Mapped[Property] = relationship(back_populates="units")
