"""
ANONYFLOW: Streaming Data Anonymization

A catalog of anonymization techniques and an orchestrator that runs
them continuously over records polled from input sources.
"""

__version__ = "0.1.0"

from anonyflow.core.models import AnonymizationResult, TechniqueMetadata
from anonyflow.core.registry import TechniqueRegistry, create_default_registry
from anonyflow.execution.session_manager import SessionManager

__all__ = [
    "AnonymizationResult",
    "SessionManager",
    "TechniqueMetadata",
    "TechniqueRegistry",
    "create_default_registry",
]
