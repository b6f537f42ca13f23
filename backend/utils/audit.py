# backend/utils/audit.py
from typing import Optional

from sqlalchemy.orm import Session
from models.log import Log


# Adds the entry to the caller's unit of work, it is committed (or rolled back) with it
def write_log(db: Session, *, user_id: Optional[int], action: str, resource: str,
              entity_id: Optional[int] = None, status: str = "SUCCESS",
              ip: Optional[str] = None, meta: Optional[dict] = None) -> Log:
    entry = Log(
        user_id=user_id,
        action=action,
        resource=resource,
        entity_id=entity_id,
        status=status,
        ip=ip,
        meta=meta or {},
    )
    db.add(entry)
    return entry
