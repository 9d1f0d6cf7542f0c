import logging
from typing import Iterable, Optional

from pymongo.database import Database

from database import is_valid_id, now, oid

logger = logging.getLogger(__name__)


def notify(db: Database, user_ids: Iterable[str], message: str, link: Optional[str] = None) -> int:
    """Append a notification to every referenced user and mark their inbox unseen.

    Invalid ids are dropped. Delivery is per user, so a failure part way
    through leaves the earlier users notified. Returns the number of users
    that received the record.
    """
    ids = []
    for user_id in user_ids:
        if is_valid_id(user_id) and oid(user_id) not in ids:
            ids.append(oid(user_id))
    if not ids:
        return 0

    record = {"message": message, "date": now(), "link": link}
    delivered = 0
    for user_oid in ids:
        res = db["user"].update_one(
            {"_id": user_oid},
            {"$push": {"notifications": record}, "$set": {"isSeen": False}},
        )
        delivered += res.matched_count
    logger.debug("Notification delivered to %d/%d users: %s", delivered, len(ids), message)
    return delivered
