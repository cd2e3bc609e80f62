from .base import BaseRepository
from .member import MemberRepository

__all__ = ["BaseRepository", "MemberRepository"]
