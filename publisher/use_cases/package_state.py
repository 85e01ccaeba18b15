"""Package state gating and package-level manifest sync."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable

from publisher.errors import StateRejected
from publisher.models import Manifest, PackageState

logger = logging.getLogger(__name__)


class ValidatePackageStateUseCase:
    """Only publishable states allow a run to touch any file."""

    @staticmethod
    def execute(package: PackageState, publishable_states: Iterable[str]) -> None:
        allowed = tuple(publishable_states)
        if package.state not in allowed:
            raise StateRejected(
                package.state,
                f"package {package.proposal_id} is in state '{package.state or 'unknown'}'; "
                f"publishing requires one of {', '.join(allowed)}",
            )
        if not package.stream_id:
            raise StateRejected(package.state, f"package {package.proposal_id} has no metadata stream")


class ResolvePackageFieldsUseCase:
    """Compute package-level manifest fields from the package state authority."""

    @staticmethod
    def execute(manifest: Manifest, package: PackageState, sync_reviewers: bool, force: bool) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        if sync_reviewers:
            fields["proposal_id"] = package.proposal_id
            if package.slug and not manifest.slug:
                fields["slug"] = package.slug
            reviewers = dict(manifest.reviewers)
            reviewers.update(package.reviewers)
            fields["reviewers"] = reviewers
        if force:
            fields["proposal_id"] = package.proposal_id
            fields["creator"] = package.creator
        if fields:
            logger.info("Prepublish: syncing %s from package %s", ", ".join(sorted(fields)), package.proposal_id)
        return fields
