"""Account model for tenants.

An account is one customer organization. It owns meetings and holds the
credentials of the third-party integrations the customer has enabled.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.integration import AccountIntegration
    from app.models.meeting import Meeting


class Account(SQLModel, table=True):
    """A tenant of the CRM.

    Attributes:
        id: Tenant identifier. Appears in per-tenant webhook URLs.
        name: Organization name.
        created_at: When the account was created.
        integrations: Third-party integration credentials for this tenant.
        meetings: Meetings scheduled under this tenant.
    """
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Relationships
    integrations: list["AccountIntegration"] = Relationship(back_populates="account")
    meetings: list["Meeting"] = Relationship(back_populates="account")
