from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from ..config import settings

CENT = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceQuote:
    nights: int
    nightly_price: Decimal
    room_total: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    taxes: Decimal
    total: Decimal


def quote_stay(nightly_price, nights: int) -> PriceQuote:
    """
    Price a stay: nightly price x nights, plus flat cleaning and service
    fees, with tax charged on the whole subtotal.
    """
    if nights < 1:
        raise ValueError("A stay is at least one night")

    price = _money(nightly_price)
    room_total = _money(price * nights)
    cleaning_fee = _money(settings.cleaning_fee)
    service_fee = _money(settings.service_fee)
    taxes = _money((room_total + cleaning_fee + service_fee) * Decimal(str(settings.tax_rate)))
    total = room_total + cleaning_fee + service_fee + taxes

    return PriceQuote(
        nights=nights,
        nightly_price=price,
        room_total=room_total,
        cleaning_fee=cleaning_fee,
        service_fee=service_fee,
        taxes=taxes,
        total=total,
    )
