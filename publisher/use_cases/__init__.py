"""Application use cases for publish workflows."""

from .package_state import ResolvePackageFieldsUseCase, ValidatePackageStateUseCase
from .planning import (
    FileFilter,
    PlanChangeSetUseCase,
    PlanDecision,
    ResolvePlanDecisionUseCase,
    apply_filter,
    image_filter,
)
from .reconcile import MetadataReconciler, merge_record, remote_entry

__all__ = [
    "FileFilter",
    "MetadataReconciler",
    "PlanChangeSetUseCase",
    "PlanDecision",
    "ResolvePackageFieldsUseCase",
    "ResolvePlanDecisionUseCase",
    "ValidatePackageStateUseCase",
    "apply_filter",
    "image_filter",
    "merge_record",
    "remote_entry",
]
