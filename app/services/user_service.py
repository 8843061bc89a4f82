"""Pulseboard — User Service.

Every user returned from here is a ``User`` entity, which has no password
field. Hashes stay inside ``UserDocument``.
"""

from typing import Any, Dict, Optional

from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.database import Database
from app.models.documents import UserDocument
from app.models.entity_models import User
from app.services.db_service import DatabaseService
from app.services.serializers import (
    account_to_storage,
    normalize_email,
    user_from_document,
    user_to_document_fields,
)

logger = get_logger("services.user")

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class UserService(DatabaseService[UserDocument]):
    def __init__(self, database: Database):
        super().__init__(UserDocument, "User", database)

    def _hash_password(self, password: str) -> str:
        return pwd_context.hash(password)

    def _prepare(self, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = user_to_document_fields(data)
        if fields.get("password"):
            fields["password"] = self._hash_password(fields["password"])
        return fields

    async def get_user_by_email(self, email: str) -> Optional[User]:
        doc = await self.find_one({"email": normalize_email(email)})
        return user_from_document(doc) if doc else None

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        doc = await self.find_by_id(user_id)
        return user_from_document(doc) if doc else None

    async def create_user(self, data: Dict[str, Any]) -> User:
        """Register a user. Email is stored lower-cased and must be unique."""
        if not data.get("name") or not data.get("email"):
            raise ValidationError("A user needs a name and an email")
        fields = self._prepare({"role": "user", **data})
        doc = await self.create(fields)
        logger.info(f"Created user {doc.email}", extra={"entity": self.model_name, "entity_id": doc.id})
        return user_from_document(doc)

    async def update_user(self, user_id: str, data: Dict[str, Any]) -> Optional[User]:
        doc = await self.update_by_id(user_id, self._prepare(data))
        return user_from_document(doc) if doc else None

    async def add_user_account(self, user_id: str, account: Dict[str, Any]) -> Optional[User]:
        """Attach an external provider account.

        Loads the whole document, appends, and saves it back rather than
        patching the accounts column.
        """
        try:
            entry = account_to_storage(account)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid linked account: {e}") from e

        doc = await self.find_by_id(user_id)
        if doc is None:
            return None
        # reassign, JSON columns do not track in-place mutation
        doc.accounts = [*(doc.accounts or []), entry]
        saved = await self.save(doc)
        return user_from_document(saved)

    async def verify_password(self, email: str, password: str) -> Optional[User]:
        """Return the user when the credentials match, else None."""
        doc = await self.find_one({"email": normalize_email(email)})
        if doc is None or not doc.password:
            return None
        if not pwd_context.verify(password, doc.password):
            return None
        return user_from_document(doc)
