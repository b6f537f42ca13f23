# backend/models/log.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship
from database import Base

# Audit entry written in the same transaction as the change it describes.
# entity_id is not a foreign key, entries outlive deleted tasks.
class Log(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(50), nullable=False, index=True)     # e.g. TASK_CANCEL
    resource = Column(String(50), nullable=False, index=True)   # tasks, task_products, ...
    entity_id = Column(Integer, nullable=True, index=True)
    status = Column(String(20), nullable=False, default="SUCCESS")
    ip = Column(String(64), nullable=True)

    # Operation details (quantities, released units, ...)
    meta = Column(JSON, nullable=True)

    user = relationship("User")
