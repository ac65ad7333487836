"""
Deployment Event database model.

Append-only status history of a deployment (checkout, check-in, cancel,
administrative correction).
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey
from sqlalchemy.sql import func
from backend.app.db.session import Base


class DeploymentEvent(Base):
    """
    Status change of one deployment.

    Events recorded:
    - DEPLOYMENT_CHECKED_OUT
    - DEPLOYMENT_CHECKED_IN
    - DEPLOYMENT_CANCELLED
    - DEPLOYMENT_CORRECTED
    """
    __tablename__ = "deployment_events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    deployment_pk = Column(Integer, ForeignKey('deployments.id'), nullable=False, index=True)

    # What happened
    action = Column(String(100), nullable=False, index=True)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=True)

    # Who did it (None for system actions)
    actor_id = Column(Integer, nullable=True)
    actor_role = Column(String(50), nullable=True)

    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<DeploymentEvent(id={self.id}, action='{self.action}', {self.from_status}->{self.to_status})>"
