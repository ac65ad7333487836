"""
Analytics Service.

Trip analytics is a pure projection of a shift's trip log: it is recomputed
from scratch on every change and never patched incrementally. Deployment
analytics is a READ-ONLY aggregate over the deployments table.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from backend.app.models.deployment import Deployment
from backend.app.models.deployment_enums import DeploymentStatus, DeploymentPurpose
from backend.app.models.trip_enums import PaymentMode, TripStatus, PaymentSplitStatus
from backend.app.schemas.analytics import (
    TripAnalytics, HourlyData, PaymentBreakdown, TripModeStats, EfficiencyMetrics,
    DeploymentSummaryStats, VehicleDeploymentUtilization, DeploymentAnalytics
)
from backend.app.schemas.trip import Trip, ShiftData


def _hours_between(start: datetime, end: datetime) -> float:
    # Mixed naive/aware inputs: naive values are read as UTC
    if (start.tzinfo is None) != (end.tzinfo is None):
        start = start if start.tzinfo else start.replace(tzinfo=timezone.utc)
        end = end if end.tzinfo else end.replace(tzinfo=timezone.utc)
    return (end - start).total_seconds() / 3600


def _payment_bucket(payment_mode: PaymentMode, status: str) -> str:
    if payment_mode == PaymentMode.CASH:
        return "cash"
    if status == "pending":
        return "pending"
    return "digital"


class AnalyticsService:

    @staticmethod
    def compute(
        trips: Sequence[Trip],
        shift_data: ShiftData,
        now: Optional[datetime] = None
    ) -> TripAnalytics:
        """
        Aggregate a shift's trips.

        Args:
            trips: Trip log of the shift, in ledger order
            shift_data: Shift envelope (start/end time, planned trips)
            now: Reference time for a shift that has not ended yet

        Returns:
            TripAnalytics; all zero for an empty trip log
        """
        if not trips:
            return TripAnalytics()

        totals = [trip.total for trip in trips]
        total_earnings = sum(totals)
        total_trips = len(trips)

        # Hourly buckets, only hours that saw a trip
        hourly: Dict[int, List[float]] = {}
        for trip, total in zip(trips, totals):
            bucket = hourly.setdefault(trip.timestamp.hour, [0.0, 0])
            bucket[0] += total
            bucket[1] += 1
        hourly_earnings = [
            HourlyData(hour=hour, earnings=earnings, trips=count)
            for hour, (earnings, count) in sorted(hourly.items())
        ]

        breakdown = {"cash": 0.0, "digital": 0.0, "pending": 0.0}
        for trip, total in zip(trips, totals):
            if trip.part_payment and trip.part_payment.enabled:
                for payment in trip.part_payment.payments:
                    key = _payment_bucket(payment.mode, PaymentSplitStatus(payment.status).value)
                    breakdown[key] += payment.amount
            else:
                key = _payment_bucket(trip.payment_mode, TripStatus(trip.status).value)
                breakdown[key] += total

        # Mode stats in first-seen order
        modes: Dict[str, List[float]] = {}
        for trip, total in zip(trips, totals):
            stats = modes.setdefault(trip.mode, [0, 0.0])
            stats[0] += 1
            stats[1] += total
        trip_mode_stats = [
            TripModeStats(mode=mode, count=count, earnings=earnings, percentage=count / total_trips * 100)
            for mode, (count, earnings) in modes.items()
        ]

        shift_hours = 0.0
        if shift_data.start_time is not None:
            end = shift_data.end_time or now or datetime.now(shift_data.start_time.tzinfo)
            shift_hours = _hours_between(shift_data.start_time, end)
        billable_hours = max(shift_hours, 1)
        total_distance = sum(trip.distance or 0 for trip in trips)

        efficiency = EfficiencyMetrics(
            trips_per_hour=total_trips / billable_hours,
            earnings_per_hour=total_earnings / billable_hours,
            earnings_per_km=total_earnings / total_distance if total_distance > 0 else 0.0,
            utilization_rate=min(total_trips / max(shift_data.total_trips_planned, 1) * 100, 100.0),
        )

        return TripAnalytics(
            total_earnings=total_earnings,
            total_trips=total_trips,
            average_trip=total_earnings / total_trips,
            highest_trip=max(totals),
            hourly_earnings=hourly_earnings,
            payment_breakdown=PaymentBreakdown(**breakdown),
            trip_mode_stats=trip_mode_stats,
            efficiency=efficiency,
        )

    @staticmethod
    async def get_deployment_summary(
        db: AsyncSession,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        purpose: Optional[DeploymentPurpose] = None,
        registration_number: Optional[str] = None
    ) -> DeploymentAnalytics:
        """Deployment totals and per-vehicle utilization over a checkout window."""
        filters = []
        if start is not None:
            filters.append(Deployment.out_timestamp >= start)
        if end is not None:
            filters.append(Deployment.out_timestamp <= end)
        if purpose is not None:
            filters.append(Deployment.purpose == purpose)
        if registration_number:
            filters.append(func.lower(Deployment.vehicle_registration) == registration_number.strip().lower())

        counts_query = select(
            Deployment.status, func.count(Deployment.id)
        ).where(*filters).group_by(Deployment.status)
        counts = {row[0]: row[1] for row in (await db.execute(counts_query)).all()}

        completed_filters = filters + [Deployment.status == DeploymentStatus.COMPLETED]
        avg_duration = (await db.execute(
            select(func.avg(Deployment.duration_minutes)).where(*completed_filters)
        )).scalar() or 0.0
        total_kms = (await db.execute(
            select(func.sum(Deployment.total_kms)).where(*completed_filters)
        )).scalar() or 0.0

        summary = DeploymentSummaryStats(
            total_deployments=sum(counts.values()),
            completed_deployments=counts.get(DeploymentStatus.COMPLETED, 0),
            cancelled_deployments=counts.get(DeploymentStatus.CANCELLED, 0),
            in_progress_deployments=counts.get(DeploymentStatus.IN_PROGRESS, 0),
            average_duration_minutes=float(avg_duration),
            total_kms=float(total_kms),
        )

        utilization_query = select(
            Deployment.vehicle_registration,
            func.count(Deployment.id).label("deployment_count"),
            func.coalesce(func.sum(Deployment.total_kms), 0).label("total_kms"),
            func.coalesce(func.sum(Deployment.duration_minutes), 0).label("total_minutes")
        ).where(*filters)\
         .group_by(Deployment.vehicle_registration)\
         .order_by(Deployment.vehicle_registration)

        vehicle_utilization = []
        for row in await db.execute(utilization_query):
            vehicle_utilization.append(VehicleDeploymentUtilization(
                vehicle_registration=row.vehicle_registration,
                deployment_count=row.deployment_count,
                total_kms=float(row.total_kms),
                total_hours=round(float(row.total_minutes) / 60, 2)
            ))

        return DeploymentAnalytics(summary=summary, vehicle_utilization=vehicle_utilization)
