"""
Fare model
Flat per-vehicle base fare times a service-type multiplier
"""
from dataclasses import dataclass
from typing import Dict, Optional

# Hourly bookings are billed as a fixed minimum block
HOURLY_MINIMUM_HOURS = 3

SERVICE_MULTIPLIERS: Dict[str, int] = {
    "one-way": 1,
    "round-trip": 2,
    "hourly": HOURLY_MINIMUM_HOURS,
}


@dataclass(frozen=True)
class FareQuote:
    """Estimated fare and how it was derived"""
    base_fare: float
    service_type: str
    multiplier: int
    total: float

    @property
    def display(self) -> str:
        return format_usd(self.total)


def multiplier_for(service_type: str) -> int:
    try:
        return SERVICE_MULTIPLIERS[service_type]
    except KeyError:
        raise ValueError(f"Unknown service type: {service_type}")


def estimate_fare(base_fare: Optional[float], service_type: str) -> float:
    """
    Estimated price for a vehicle and service type.

    Returns 0 when no vehicle (no base fare) is selected.

    Raises:
        ValueError: If the base fare is not positive or the service type is unknown
    """
    multiplier = multiplier_for(service_type)
    if base_fare is None:
        return 0.0
    base_fare = float(base_fare)
    if base_fare <= 0:
        raise ValueError(f"Base fare must be > 0, got {base_fare}")
    return base_fare * multiplier


def quote(base_fare: float, service_type: str) -> FareQuote:
    return FareQuote(
        base_fare=float(base_fare),
        service_type=service_type,
        multiplier=multiplier_for(service_type),
        total=estimate_fare(base_fare, service_type),
    )


def format_usd(amount: float) -> str:
    """$1,234.50 style display"""
    return f"${amount:,.2f}"


def to_minor_units(amount: float) -> int:
    """Dollars to cents for the payment provider"""
    return int(round(amount * 100))
