from library_auth.models.member import Member
from library_auth.models.refresh_record import RefreshRecord

__all__ = ["Member", "RefreshRecord"]
