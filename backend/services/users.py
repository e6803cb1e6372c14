"""
User Service — CRUD for platform users.
"""

from db.models import User
from services.base import EntityService


class UserService(EntityService[User]):
    model = User

    async def find_by_email(self, email: str) -> User | None:
        return await self.store.find_unique(User, {"email": email})
