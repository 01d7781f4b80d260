"""Rough cost estimates from per-resource hourly rates."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from archforge.architecture.models import Architecture
from archforge.context import RequestContext
from archforge.providers.catalog import ProviderRegistry
from archforge.schemas import ArchitectureCostEstimate, ResourceCostEstimate
from archforge.utils.config import settings

logger = logging.getLogger(__name__)

HOURS_PER_MONTH = 730


def describe_period(duration: timedelta) -> str:
    hours = duration.total_seconds() / 3600
    if abs(hours - HOURS_PER_MONTH) < 1e-6:
        return "monthly"
    if abs(hours - 24) < 1e-6:
        return "daily"
    if abs(hours - 1) < 1e-6:
        return "hourly"
    return f"{hours:g}h"


class PricingService:
    def __init__(self, providers: ProviderRegistry, currency: Optional[str] = None):
        self.providers = providers
        self.currency = currency or settings.pricing_currency

    def estimate(
        self,
        arch: Architecture,
        duration: timedelta,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> ArchitectureCostEstimate:
        if ctx is not None:
            ctx.check()
        if duration.total_seconds() <= 0:
            raise ValueError("pricing duration must be positive")
        hours = duration.total_seconds() / 3600
        catalog = self.providers.get(arch.provider)
        estimates = []
        for resource in arch.resources:
            rate = catalog.hourly_rate(resource) if catalog else 0.0
            estimates.append(
                ResourceCostEstimate(
                    resource_id=resource.id,
                    resource_type=resource.type.name,
                    hourly_rate=rate,
                    total_cost=round(rate * hours, 4),
                )
            )
        total = round(sum(item.total_cost for item in estimates), 2)
        logger.debug("Estimated architecture cost", extra={"total_cost": total, "hours": hours})
        return ArchitectureCostEstimate(
            total_cost=total,
            currency=self.currency,
            period=describe_period(duration),
            duration=duration,
            resource_estimates=estimates,
            provider=arch.provider,
            region=arch.region,
        )
