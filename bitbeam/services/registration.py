from __future__ import annotations

import logging

from bitbeam.core.errors import ForbiddenError, ValidationError
from bitbeam.models import User
from bitbeam.services.identity import IdentityStore

logger = logging.getLogger("bitbeam.registration")


class RegistrationService:
    def __init__(self, identities: IdentityStore, allow_register: bool) -> None:
        self.identities = identities
        self.allow_register = allow_register

    def register(self, username: str | None, password: str | None) -> User:
        if not self.allow_register:
            raise ForbiddenError("registration disabled", operation="register", identifier=username)
        if not username or not password:
            raise ValidationError("username and password are required", operation="register")
        user = self.identities.register(username, password)
        logger.info("event=user_registered username=%s", username)
        return user
