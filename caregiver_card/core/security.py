"""
Sicherheits- und Authentifizierungsmodule
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from fastapi import HTTPException, status, Request
from cryptography.fernet import Fernet
from caregiver_card.config import settings
from caregiver_card.core.logging import get_logger

logger = get_logger(__name__)


class SecurityManager:
    """Zentrale Sicherheitsverwaltung"""

    def __init__(self, user_id: str = None, password: str = None, secret_key: str = None):
        self.user_id = user_id if user_id is not None else settings.app_user_id
        self.password = password if password is not None else settings.app_password
        self.secret_key = secret_key or settings.session_secret
        self.algorithm = settings.token_algorithm

    def check_credentials(self, user_id: str, password: str) -> bool:
        """Prüft die gemeinsamen Zugangsdaten in konstanter Zeit"""
        user_ok = secrets.compare_digest((user_id or "").encode(), self.user_id.encode())
        pass_ok = secrets.compare_digest((password or "").encode(), self.password.encode())
        return user_ok and pass_ok

    def create_session_token(self, subject: str, expires_delta: Optional[timedelta] = None) -> str:
        """Erstellt einen JWT Session Token"""
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
        )
        to_encode = {"sub": subject, "exp": expire}
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Verifiziert einen JWT Token"""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"Token verification failed: {e}")
            return None

    def hash_identifier(self, value: str) -> str:
        """Erstellt einen Hash für Audit-Logs"""
        return hashlib.sha256((value or "").encode()).hexdigest()[:16]

    def generate_request_id(self) -> str:
        """Generiert eine eindeutige Request-ID"""
        return secrets.token_urlsafe(16)


# Global security manager instance
security_manager = SecurityManager()


async def require_session(request: Request) -> Dict[str, Any]:
    """
    Dependency für angemeldete Seiten.
    Ohne gültiges Session-Cookie wird auf /login umgeleitet.
    """
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        payload = security_manager.verify_token(token)
        if payload:
            return payload

    logger.info(f"No valid session for {request.url.path}, redirecting to login")
    raise HTTPException(
        status_code=status.HTTP_303_SEE_OTHER,
        detail="Login required",
        headers={"Location": "/login"},
    )


class DataEncryption:
    """Encryption-at-Rest for sensitive data using Fernet."""

    def __init__(self, key: Optional[str] = None):
        if not key:
            logger.warning("No data encryption key configured, using a per-process key.")
            key = Fernet.generate_key().decode()
        self.fernet = Fernet(key.encode())

    def encrypt_data(self, data: bytes) -> bytes:
        """Encrypts data."""
        return self.fernet.encrypt(data)

    def decrypt_data(self, encrypted_data: bytes) -> bytes:
        """Decrypts data."""
        return self.fernet.decrypt(encrypted_data)


# Global instance for data encryption
data_encryption = DataEncryption(settings.data_encryption_key)
