"""User profile model holding the CRM role."""

from sqlmodel import Field, SQLModel

ROLE_PENDING = "PENDING"


class Profile(SQLModel, table=True):
    """Application profile of an authenticated user.

    Attributes:
        id: User ID issued by the auth backend.
        full_name: Display name.
        role: CRM role (CEO, ADMIN, SALES, OPS, MARKETING, STAFF,
            CLIENT_USER, CLIENT_ADMIN or PENDING until an admin assigns one).
        account_id: Tenant the user belongs to, if any.
    """
    id: str = Field(primary_key=True)
    full_name: str | None = None
    role: str = Field(default=ROLE_PENDING)
    account_id: str | None = Field(default=None, foreign_key="account.id")
