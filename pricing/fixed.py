#Purpose: Fixed-price route matching.
#A fixed price wins over everything metered. An entry matches when
#(a) both of its address fragments occur (case-insensitive) in the request's
#    pickup / dropoff text, or in reverse when the entry allows it, or
#(b) zone pricing is on and the request's resolved pickup / dropoff zones
#    equal the entry's configured zone pair.
#Several entries may match; the first in repository order wins.

from typing import Iterable, Optional

from .models import FixedPrice


def _contains(text: str, fragment: Optional[str]) -> bool:
    return bool(fragment) and fragment.lower() in (text or "").lower()


def matches_addresses(entry: FixedPrice, pickup: str, dropoff: str) -> bool:
    if _contains(pickup, entry.pickup) and _contains(dropoff, entry.dropoff):
        return True

    if entry.is_reverse:
        return _contains(dropoff, entry.pickup) and _contains(pickup, entry.dropoff)

    return False


def matches_zones(entry: FixedPrice, pickup_zone_id: Optional[str], dropoff_zone_id: Optional[str]) -> bool:
    if not entry.pickup_zone_id or not entry.dropoff_zone_id:
        return False
    if pickup_zone_id is None or dropoff_zone_id is None:
        return False
    return entry.pickup_zone_id == pickup_zone_id and entry.dropoff_zone_id == dropoff_zone_id


def find_fixed_price(
    entries: Iterable[FixedPrice],
    pickup: str,
    dropoff: str,
    *,
    pickup_zone_id: Optional[str] = None,
    dropoff_zone_id: Optional[str] = None,
) -> Optional[FixedPrice]:
    """
    First entry matching by address text or by zone pair, else None.
    Zone ids are only passed in when the tenant has zone pricing enabled.
    """
    for entry in entries:
        if matches_addresses(entry, pickup, dropoff):
            return entry
        if matches_zones(entry, pickup_zone_id, dropoff_zone_id):
            return entry
    return None
