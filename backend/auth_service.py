"""
Sign-up and login for staff users.

Email and phone uniqueness is a count-then-insert pre-check; two
concurrent sign-ups with the same email can both pass it.
"""
import logging

from sqlalchemy.orm import Session

import auth
from database import store_errors
from errors import NotFound, ValidationFailed
from models import User
from normalize import new_id, utcnow
from schemas import UserCreate, UserLogin

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def signup(self, user: UserCreate) -> User:
        with store_errors("signup duplicate check"):
            email_count = self.db.query(User).filter(User.email == user.email).count()
            phone_count = self.db.query(User).filter(User.phone == user.phone).count()
        if email_count > 0 or phone_count > 0:
            raise ValidationFailed("This email or phone already exists")

        now = utcnow()
        user_id = new_id()
        token, refresh_token = auth.generate_all_tokens(user.email, user.first_name, user.last_name, user_id)
        db_user = User(
            user_id=user_id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
            password=auth.get_password_hash(user.password),
            token=token,
            refresh_token=refresh_token,
            created_at=now,
            updated_at=now,
        )
        try:
            with store_errors("signup"):
                self.db.add(db_user)
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Registered user %s", user_id)
        return db_user

    def login(self, credentials: UserLogin) -> User:
        email = credentials.email.strip().lower()
        with store_errors("login lookup"):
            found = self.db.query(User).filter(User.email == email).first()
        # Same answer for an unknown email and a wrong password
        if found is None or not auth.verify_password(credentials.password, found.password):
            raise ValidationFailed("login or password is incorrect")

        token, refresh_token = auth.generate_all_tokens(found.email, found.first_name, found.last_name, found.user_id)
        return self.update_all_tokens(found, token, refresh_token)

    def refresh(self, refresh_token: str) -> User:
        """Trade the current refresh token for a new token pair; older refresh tokens stop working."""
        payload = auth.verify_token(refresh_token)
        # access tokens carry the email claim, refresh tokens do not
        if not payload or not payload.get("uid") or "email" in payload:
            raise ValidationFailed("refresh token is invalid")

        with store_errors("refresh lookup"):
            user = self.db.query(User).filter(User.user_id == payload["uid"]).first()
        if user is None or user.refresh_token != refresh_token:
            raise ValidationFailed("refresh token is invalid")

        token, new_refresh_token = auth.generate_all_tokens(user.email, user.first_name, user.last_name, user.user_id)
        return self.update_all_tokens(user, token, new_refresh_token)

    def update_all_tokens(self, user: User, token: str, refresh_token: str) -> User:
        user.token = token
        user.refresh_token = refresh_token
        user.updated_at = utcnow()
        try:
            with store_errors(f"update tokens {user.user_id}"):
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return user

    def get_user(self, user_id: str) -> User:
        with store_errors(f"user lookup {user_id}"):
            user = self.db.query(User).filter(User.user_id == user_id).first()
        if user is None:
            raise NotFound("User was not found", user_id=user_id)
        return user
