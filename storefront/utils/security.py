# storefront/utils/security.py

"""
Admin password hashing and credential checks.
passlib with sha256_crypt keeps hashes portable across platforms.
"""

import hmac
from typing import Optional

from passlib.context import CryptContext

from storefront.config import Settings, settings as default_settings
from storefront.schemas.auth import AdminUser
from storefront.utils.errors import ConfigurationMissing

# deprecated="auto" flags hashes from retired schemes for re-hashing
pwd_context = CryptContext(schemes=["sha256_crypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hashes a password.

    :param password: plain password
    :return: hash suitable for AUTH_PASSWORD_HASH
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Checks a password against its hash.

    :param plain_password: plain password
    :param hashed_password: stored hash
    :return: True when they match; False for a mismatch or an unreadable hash
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def verify_admin_credentials(username: str, password: str, settings: Optional[Settings] = None) -> Optional[AdminUser]:
    """
    Returns the configured administrator when login and password match, otherwise None.
    Raises ConfigurationMissing when no admin password hash is configured.
    """
    settings = settings or default_settings
    if not settings.AUTH_PASSWORD_HASH:
        raise ConfigurationMissing(["AUTH_PASSWORD_HASH"])

    login_ok = hmac.compare_digest(username.encode("utf-8"), settings.AUTH_LOGIN.encode("utf-8"))
    password_ok = verify_password(password, settings.AUTH_PASSWORD_HASH)
    if not (login_ok and password_ok):
        return None

    return AdminUser(id=f"{settings.AUTH_LOGIN}-admin", username=settings.AUTH_LOGIN)
