"""Domain services for the MikroTik dashboard.

Services in this package:
- DeviceRegistry: persisted device records and secret encryption
- DeviceProber: one status query against a live session
- ConnectOrchestrator: the connect workflow tying registry, pool, prober and event bus together
"""

from mikrotik_dashboard.domain.services.connect import ConnectOrchestrator
from mikrotik_dashboard.domain.services.device import DeviceRegistry
from mikrotik_dashboard.domain.services.prober import DeviceProber

__all__ = [
    "ConnectOrchestrator",
    "DeviceProber",
    "DeviceRegistry",
]
