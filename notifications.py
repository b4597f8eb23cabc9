"""
Turning a state change into a delivered message.

Each recipient always gets a Notification row, which is the in-app history
and the record of "you have been notified". Push is attempted once per
active device token afterwards; a failed push is logged and forgotten.
"""
import json
import logging
from typing import Iterable, List, NamedTuple, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from database import Notification, get_db
from devices import active_tokens
from errors import DeliveryWarning
from push import ExpoPushClient, get_push_client
from store import BudgetPlanStore, store_errors

logger = logging.getLogger(__name__)

PLAN_ENTITY = "RancanganAnggaranBiaya"


class RelatedRef(NamedTuple):
    id: int
    type: str = PLAN_ENTITY


class NotificationDispatcher:
    def __init__(self, db: Session, push_client: ExpoPushClient):
        self.db = db
        self.push_client = push_client

    def notify(
        self,
        recipient_ids: Iterable[int],
        title: str,
        body: str,
        category: str,
        related_ref: Optional[RelatedRef] = None,
        action_path: Optional[str] = None,
        payload: Optional[dict] = None,
    ) -> List[Notification]:
        recipients = sorted(set(recipient_ids))
        if not recipients:
            logger.info("No recipients for %r, nothing to send", title)
            return []
        payload = payload or {}

        records = [
            Notification(
                user_id=user_id,
                title=title,
                body=body,
                type=category,
                related_id=related_ref.id if related_ref else None,
                related_type=related_ref.type if related_ref else None,
                action_url=action_path,
                priority="high",
                is_read=False,
                data=json.dumps(payload),
            )
            for user_id in recipients
        ]
        with store_errors(self.db, "save notifications"):
            self.db.add_all(records)
            self.db.commit()
        logger.info("Saved %s notification(s): %s", len(records), title)

        push_data = {
            "type": category,
            "relatedId": related_ref.id if related_ref else None,
            "relatedType": related_ref.type if related_ref else None,
            "actionUrl": action_path,
            **payload,
        }
        tokens = active_tokens(self.db, recipients)
        for user_id in recipients:
            if not tokens[user_id]:
                logger.info("User %s has no active device, push skipped", user_id)
            for token in tokens[user_id]:
                self._push(token, title, body, push_data)
        return records

    def _push(self, token: str, title: str, body: str, data: dict) -> bool:
        try:
            delivered = self.push_client.send(token, title, body, data)
        except DeliveryWarning as warning:
            logger.warning("Push delivery failed: %s", warning.message)
            return False
        except Exception as e:
            logger.exception("Push client error for %s: %s", token, e)
            return False
        if not delivered:
            logger.warning("Push to %s was not delivered", token)
        return delivered

    def notify_administrators(self, title: str, body: str, category: str, **kwargs):
        admin_ids = BudgetPlanStore(self.db).list_administrator_ids()
        if not admin_ids:
            logger.info("No administrators to notify")
        return self.notify(admin_ids, title, body, category, **kwargs)

    def notify_user(self, user_id: Optional[int], title: str, body: str, category: str, **kwargs):
        if user_id is None:
            logger.info("No recipient for %r, nothing to send", title)
            return []
        if BudgetPlanStore(self.db).get_user(user_id) is None:
            logger.info("User %s not found, notification skipped", user_id)
            return []
        return self.notify([user_id], title, body, category, **kwargs)


def get_dispatcher(
    db: Session = Depends(get_db),
    push_client: ExpoPushClient = Depends(get_push_client),
) -> NotificationDispatcher:
    return NotificationDispatcher(db, push_client)
