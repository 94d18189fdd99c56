"""Remote pincode resolution helpers."""

from .cache import ResolverCache
from .client import RemoteResolver, build_denylist
from .derivation import (
    ServiceDenylist,
    derive_delivery_time,
    derive_region,
    derive_serviceable,
    derive_shipping_cost,
)
from .models import ResolutionTrace, SourceAttempt, SourceFailureReason, SourceStatus
from .rate_limit import RateLimiter
from .sources import check_source_health, get_source
