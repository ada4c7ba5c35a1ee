"""Service layer: the public progression API and its wiring"""

from progression_engine.services.container import ServiceContainer, build_container
from progression_engine.services.progression_service import ProgressionService

__all__ = [
    "ServiceContainer",
    "build_container",
    "ProgressionService",
]
