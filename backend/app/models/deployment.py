"""
Deployment database model.

One OUT/IN cycle of a fleet vehicle. Only one IN_PROGRESS deployment per
vehicle registration is allowed, enforced by a partial unique index.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, JSON, Text, Index, text
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.deployment_enums import DeploymentStatus, DeploymentPurpose


OPEN_DEPLOYMENT_PREDICATE = text("status = 'IN_PROGRESS'")


class Deployment(Base):
    """
    Deployment model.

    Holds a reference to the registry vehicle (registration number) plus a
    display-only snapshot of its details taken at checkout. The OUT and IN
    snapshots are owned exclusively by the deployment.
    """
    __tablename__ = "deployments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    deployment_id = Column(String(32), unique=True, nullable=False, index=True)  # DEP_NNN_YYMMDD

    # Vehicle reference (canonical registration from the registry, not a copy of record)
    vehicle_registration = Column(String(50), nullable=False, index=True)
    vehicle_details = Column(JSON, nullable=True)

    # Assignment
    pilot_id = Column(String(100), nullable=False, index=True)
    purpose = Column(Enum(DeploymentPurpose), nullable=False)

    # Lifecycle
    status = Column(Enum(DeploymentStatus), default=DeploymentStatus.IN_PROGRESS, nullable=False, index=True)

    # OUT snapshot
    out_timestamp = Column(DateTime(timezone=True), nullable=True)
    out_data = Column(JSON, nullable=True)

    # IN snapshot
    in_timestamp = Column(DateTime(timezone=True), nullable=True)
    in_data = Column(JSON, nullable=True)

    # Computed on check-in
    duration_minutes = Column(Integer, nullable=True)
    total_kms = Column(Float, nullable=True)

    cancel_reason = Column(Text, nullable=True)
    created_by = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Unique constraint: only one open deployment per vehicle
    __table_args__ = (
        Index(
            'ix_deployments_open_vehicle',
            'vehicle_registration',
            unique=True,
            postgresql_where=OPEN_DEPLOYMENT_PREDICATE,
            sqlite_where=OPEN_DEPLOYMENT_PREDICATE,
        ),
    )

    def __repr__(self):
        return f"<Deployment(id='{self.deployment_id}', vehicle='{self.vehicle_registration}', status='{self.status.value}')>"
