"""Coordinator: provider selection, job registry, assign/collect orchestration."""

from duckmesh.coordinator.lifecycle import JobLifecycle
from duckmesh.coordinator.registry import (
    AssignmentRecord,
    AssignmentState,
    JobRegistry,
)
from duckmesh.coordinator.selector import ProviderSelector

__all__ = [
    # Lifecycle
    "JobLifecycle",
    # Registry
    "AssignmentRecord",
    "AssignmentState",
    "JobRegistry",
    # Selection
    "ProviderSelector",
]
