"""Artifact resolution.

Selects the single inventory entry to provision for a platform and version
constraint. Resolution is pure: it reads the inventory and nothing else.
"""

import logging

from syftpack.errors import NoValidArtifact
from syftpack.inventory.models import Arch, Artifact, Inventory, Os
from syftpack.inventory.version import VersionConstraint
from syftpack.utils.platform import current_arch, current_os

logger = logging.getLogger(__name__)


def resolve(
    inventory: Inventory,
    os: Os,
    arch: Arch,
    version_constraint: str | VersionConstraint,
) -> Artifact:
    """Select the highest version matching os, arch and constraint.

    Among entries with equal versions the first in inventory order wins.

    Args:
        inventory: Loaded inventory
        os: Target operating system
        arch: Target CPU architecture
        version_constraint: Constraint text or parsed constraint

    Returns:
        The selected artifact

    Raises:
        NoValidArtifact: If nothing matches
        ValueError: If the constraint text is malformed
    """
    if isinstance(version_constraint, str):
        constraint = VersionConstraint.parse(version_constraint)
    else:
        constraint = version_constraint

    best: Artifact | None = None
    for artifact in inventory:
        if artifact.os is not os or artifact.arch is not arch:
            continue
        if not constraint.satisfies(artifact.version):
            continue
        if best is None or artifact.version.precedence_key() > best.version.precedence_key():
            best = artifact

    if best is None:
        raise NoValidArtifact(os.value, arch.value, str(constraint))

    logger.debug(
        "Resolved %s/%s '%s' to %s", os.value, arch.value, constraint, best.version
    )
    return best


def resolve_for_current_platform(
    inventory: Inventory,
    version_constraint: str | VersionConstraint = "*",
) -> Artifact:
    """Resolve for the platform this process runs on.

    Raises:
        NoValidArtifact: If nothing matches
        UnsupportedPlatformError: If the runtime platform is unknown
    """
    return resolve(inventory, current_os(), current_arch(), version_constraint)
