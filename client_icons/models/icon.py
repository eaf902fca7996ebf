from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Enum, JSON, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from client_icons.core.constants import IconType
from .base import Base, utc_now


class ClientIcon(Base):
    __tablename__ = "client_icons"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    color = Column(String)
    icon_type = Column(
        Enum(IconType, native_enum=False, length=20,
             values_callable=lambda members: [m.value for m in members]),
        nullable=False,
        default=IconType.LUCIDE,
    )
    icon_value = Column(String(100))                   # lucide name or emoji
    tooltip = Column(String(255))
    auto_assign_condition = Column(JSON(none_as_null=True), nullable=True)  # None => manual-only icon
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utc_now)

    assignments = relationship(
        "ClientIconAssignment",
        back_populates="icon",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<ClientIcon id={self.id} company={self.company_id} name={self.name!r}>"


class ClientIconAssignment(Base):
    __tablename__ = "client_icon_assignments"
    __table_args__ = (
        UniqueConstraint("client_id", "icon_id", name="uq_client_icon_assignment"),
    )

    id = Column(Integer, primary_key=True)
    client_id = Column(
        Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    icon_id = Column(
        Integer, ForeignKey("client_icons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_auto_assigned = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utc_now)

    client = relationship("Client", back_populates="icon_assignments")
    icon = relationship("ClientIcon", back_populates="assignments")

    def __repr__(self):
        origin = "auto" if self.is_auto_assigned else "manual"
        return f"<ClientIconAssignment client={self.client_id} icon={self.icon_id} {origin}>"
