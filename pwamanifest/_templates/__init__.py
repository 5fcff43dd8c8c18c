"""Service Worker templates.

Two variants are shipped, selected by the PWA flag of the build:
- On: precaches assets from the embedded manifest, CRITICAL first
- Off: kill switch that unregisters the worker and clears its caches

Templates carry {{buildTimestamp}} and {{assetManifest}} placeholders.
"""

from ._service_worker_off import SERVICE_WORKER_OFF_JS
from ._service_worker_on import SERVICE_WORKER_ON_JS

__all__ = [
    "SERVICE_WORKER_ON_JS",
    "SERVICE_WORKER_OFF_JS",
]
