from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, JSON, Text
from sqlalchemy.orm import relationship

from client_icons.core.constants import (
    EmploymentType, VatStatus, TaxScheme, ZusStatus, AmlGroup
)
from .base import Base, utc_now


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    nip = Column(String)
    email = Column(String)
    phone = Column(String)
    company_specificity = Column(Text)
    additional_info = Column(Text)
    pkd_code = Column(String)
    gtu_codes = Column(JSON(none_as_null=True))       # list of GTU code strings
    employment_type = Column(Enum(EmploymentType, native_enum=False, length=32))
    vat_status = Column(Enum(VatStatus, native_enum=False, length=32))
    tax_scheme = Column(Enum(TaxScheme, native_enum=False, length=32))
    zus_status = Column(Enum(ZusStatus, native_enum=False, length=32))
    aml_group = Column(Enum(AmlGroup, native_enum=False, length=32))
    receive_email_copy = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    icon_assignments = relationship(
        "ClientIconAssignment",
        back_populates="client",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Client id={self.id} company={self.company_id} name={self.name!r}>"
