"""
Device Factory Management - Backend Services
Version: 1.1.0

Changelog:
v1.1.0 (2026-03-04): SWM vehicle sync client
v1.0.0 (2026-02-27): Initial services module
"""

from . import exceptions
from . import column_mappings
from . import validators
from . import state_machine
from . import query_builder
from . import device_repository
from . import swm_client
from . import lifecycle_service
from . import device_query_service
