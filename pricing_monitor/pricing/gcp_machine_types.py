"""
GCP machine type resolution.
Derives vCPU count and memory size from machine type identifiers such as
'e2-micro' or 'n2-standard-2', since the billing catalog prices cores and
memory separately and does not describe machine shapes.
"""
from typing import Dict

from pricing_monitor.domain.pricing_models import MachineShape


# Shared-core and small predefined types that do not follow <family>-<class>-<n>
FIXED_MACHINE_SHAPES: Dict[str, MachineShape] = {
    "e2-micro": MachineShape(family="e2", vcpus=2, memory_gb=1.0),
    "e2-small": MachineShape(family="e2", vcpus=2, memory_gb=2.0),
    "e2-medium": MachineShape(family="e2", vcpus=2, memory_gb=4.0),
    "f1-micro": MachineShape(family="f1", vcpus=1, memory_gb=0.6),
    "g1-small": MachineShape(family="g1", vcpus=1, memory_gb=1.7),
}

# GB of memory per vCPU by machine class
MEMORY_RATIO_BY_CLASS: Dict[str, float] = {
    "standard": 3.75,
    "highmem": 6.5,
    "highcpu": 0.9,
}
DEFAULT_MEMORY_RATIO = 4.0


class MachineTypeError(ValueError):
    """Raised when a machine type cannot be resolved to a shape."""
    pass


class MachineTypeFormatError(MachineTypeError):
    """Raised when a machine type identifier is malformed."""
    pass


class UnresolvableMachineTypeError(MachineTypeError):
    """Raised when no core count can be derived from a machine type."""
    pass


def resolve_machine_type(machine_type: str) -> MachineShape:
    """
    Resolve a machine type identifier to its family, vCPU count and memory.

    Args:
        machine_type: Dash-delimited identifier, '<family>-<class>[-<cores>]'

    Returns:
        MachineShape for the identifier

    Raises:
        MachineTypeFormatError: Fewer than two tokens, or a non-positive core token
        UnresolvableMachineTypeError: No core count present and not a known fixed shape
    """
    parts = machine_type.split("-")
    if len(parts) < 2:
        raise MachineTypeFormatError(f"invalid machine type format: {machine_type}")

    fixed = FIXED_MACHINE_SHAPES.get(machine_type)
    if fixed is not None:
        return fixed

    family, machine_class = parts[0], parts[1]

    if len(parts) < 3:
        raise UnresolvableMachineTypeError(
            f"could not determine vCPU count for machine type: {machine_type}"
        )

    core_token = parts[2]
    if not (core_token.isascii() and core_token.isdigit()) or int(core_token) <= 0:
        raise MachineTypeFormatError(
            f"invalid vCPU count {core_token!r} in machine type: {machine_type}"
        )
    vcpus = int(core_token)

    ratio = MEMORY_RATIO_BY_CLASS.get(machine_class, DEFAULT_MEMORY_RATIO)
    return MachineShape(family=family, vcpus=vcpus, memory_gb=vcpus * ratio)
