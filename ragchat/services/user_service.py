"""
User records. Users are created lazily the first time an owner id is seen.
"""
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StorageError
from ..logging_config import logger


def placeholder_email(user_id: str) -> str:
    return f"{user_id}@temp.local"


def ensure_user(
    engine: Engine,
    user_id: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    role: str = "user",
) -> bool:
    """
    Create the user row if it does not exist yet.

    Safe under concurrent duplicate calls: the insert is a no-op on conflict,
    so exactly one row is ever created.

    Returns:
        True if this call created the user, False if it already existed

    Raises:
        StorageError: If the database write fails
    """
    try:
        with engine.begin() as conn:
            created = conn.execute(
                text("""
                    INSERT INTO users (id, email, name, role)
                    VALUES (:id, :email, :name, :role)
                    ON CONFLICT (id) DO NOTHING
                    RETURNING id
                """),
                {
                    "id": user_id,
                    "email": email or placeholder_email(user_id),
                    "name": name,
                    "role": role,
                },
            ).first()
    except SQLAlchemyError as e:
        logger.error("Failed to ensure user exists", user_id=user_id, error=str(e))
        raise StorageError("Failed to create user record") from e

    if created is not None:
        logger.info("User created", user_id=user_id)
        return True
    return False

