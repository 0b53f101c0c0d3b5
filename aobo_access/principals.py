"""
Catalog of the regional AOBO (Admin On Behalf Of) foreign security groups.

Each region maps to the object id of the partner group that is granted Owner
on customer subscriptions. Object ids that are not baked in can be provided
with AOBO_PRINCIPAL_ID_<REGION> environment variables.
"""

import logging
import os
from collections import namedtuple
from enum import Enum
from types import MappingProxyType

from aobo_access.errors import UnknownRegionError

logger = logging.getLogger(__name__)

PRINCIPAL_ID_ENV_PREFIX = "AOBO_PRINCIPAL_ID_"

Principal = namedtuple("Principal", ["region", "object_id", "display_name"])


class Region(str, Enum):
    AU = "AU"
    NZ = "NZ"
    HK = "HK"
    SG = "SG"

    @classmethod
    def parse(cls, value):
        try:
            return cls(value.strip().upper())
        except (AttributeError, ValueError):
            return None


# Only the AU group id is fixed; NZ, HK and SG group ids have to come from
# AOBO_PRINCIPAL_ID_<REGION>.
_BUILTIN_OBJECT_IDS = {
    Region.AU: "b1d52de1-30aa-48de-9220-c93f9b6c5711",
}


def build_catalog(environ=None):
    """Build the read-only region -> Principal mapping.

    Environment values override the built-in object ids. Regions without an
    object id are left out of the catalog.
    """
    environ = os.environ if environ is None else environ
    catalog = {}
    for region in Region:
        object_id = environ.get(PRINCIPAL_ID_ENV_PREFIX + region.value) or _BUILTIN_OBJECT_IDS.get(region)
        if not object_id:
            logger.debug(f"No principal object id configured for region {region.value}")
            continue
        catalog[region] = Principal(region, object_id.strip(), f"Insight {region.value}")
    return MappingProxyType(catalog)


PRINCIPALS = build_catalog()


def get_principal(region, catalog=None):
    catalog = PRINCIPALS if catalog is None else catalog
    parsed = region if isinstance(region, Region) else Region.parse(region)
    if parsed is None:
        choices = ", ".join(r.value for r in Region)
        raise UnknownRegionError(f"Unknown region '{region}'. Expected one of: {choices}")
    if parsed not in catalog:
        raise UnknownRegionError(
            f"No principal object id configured for region {parsed.value}. "
            f"Set {PRINCIPAL_ID_ENV_PREFIX}{parsed.value} to the group's object id."
        )
    return catalog[parsed]
