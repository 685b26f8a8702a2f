from app.models.account import Account
from app.models.integration import AccountIntegration
from app.models.meeting import Meeting, MeetingStatus
from app.models.profile import Profile

__all__ = ["Account", "AccountIntegration", "Meeting", "MeetingStatus", "Profile"]
