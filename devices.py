"""
Push delivery targets per user.

A user has at most one active device token at a time: registering a token
switches every other token of that user off, and a token picked up by a
new user (shared or handed-over phone) stops delivering to its previous
owner entirely.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from database import DeviceToken
from errors import ValidationError
from store import store_errors

logger = logging.getLogger(__name__)

METADATA_FIELDS = ("device_type", "device_id", "device_name", "app_version")


def _apply_metadata(row: DeviceToken, metadata: dict) -> None:
    for field in METADATA_FIELDS:
        setattr(row, field, metadata.get(field) or None)


def _deactivate(db: Session, user_id: int, keep_id: Optional[int] = None) -> int:
    query = db.query(DeviceToken).filter(
        DeviceToken.user_id == user_id, DeviceToken.is_active.is_(True)
    )
    if keep_id is not None:
        query = query.filter(DeviceToken.id != keep_id)
    return query.update({DeviceToken.is_active: False}, synchronize_session="fetch")


def register_device(
    db: Session, user_id: int, token: str, metadata: Optional[dict] = None
) -> DeviceToken:
    if not token or not token.strip():
        raise ValidationError("Device token is required", field="device_token")
    token = token.strip()
    metadata = metadata or {}
    now = datetime.utcnow()

    with store_errors(db, "register device token"):
        row = db.query(DeviceToken).filter(DeviceToken.device_token == token).first()

        if row is not None and row.user_id != user_id:
            previous_owner = row.user_id
            _deactivate(db, previous_owner)
            row.user_id = user_id
            logger.info(
                "Device token %s moved from user %s to user %s", row.id, previous_owner, user_id
            )
        elif row is None:
            row = DeviceToken(user_id=user_id, device_token=token, created_at=now)
            db.add(row)
            db.flush()

        _deactivate(db, user_id, keep_id=row.id)
        _apply_metadata(row, metadata)
        row.is_active = True
        row.last_used_at = now
        row.updated_at = now
        db.commit()
        db.refresh(row)

    logger.info("Registered device token %s for user %s", row.id, user_id)
    return row


def deactivate_all(db: Session, user_id: int) -> int:
    """Logout: no token of ``user_id`` receives pushes any more."""
    with store_errors(db, "deactivate device tokens"):
        count = (
            db.query(DeviceToken)
            .filter(DeviceToken.user_id == user_id)
            .update(
                {DeviceToken.is_active: False, DeviceToken.updated_at: datetime.utcnow()},
                synchronize_session="fetch",
            )
        )
        db.commit()
    logger.info("Deactivated %s device token(s) for user %s", count, user_id)
    return count


def active_tokens(db: Session, user_ids: Iterable[int]) -> Dict[int, List[str]]:
    user_ids = list(user_ids)
    tokens = {user_id: [] for user_id in user_ids}
    if not user_ids:
        return tokens
    with store_errors(db, "load device tokens"):
        rows = (
            db.query(DeviceToken.user_id, DeviceToken.device_token)
            .filter(DeviceToken.user_id.in_(user_ids), DeviceToken.is_active.is_(True))
            .order_by(DeviceToken.id)
            .all()
        )
    for row in rows:
        tokens[row.user_id].append(row.device_token)
    return tokens
