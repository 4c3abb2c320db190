"""
Alias registry and policy resolver.

Scenario files name strategies by a short alias. The resolver prefixes the
alias with the namespace of its capability kind, loads the implementation
once through the AliasRegistry and builds a fresh instance on every call:

    resolver = PolicyResolver()
    scheduler = resolver.resolve(CapabilityKind.VM_SCHEDULER, "TimeShared")
    # -> cloudsim_scenario.schedulers.VmSchedulerTimeShared()

An alias containing a dot is used as a full ``module.Class`` path, so
strategies living outside this package can be named directly.
"""

from enum import Enum
from typing import Any, Callable, Dict, Optional
import importlib
import logging

from .capabilities import (
    PeProvisioner, ResourceProvisioner, UtilizationModel,
    VmAllocationPolicy, VmScheduler, WorkloadScheduler,
)

logger = logging.getLogger(__name__)

_PACKAGE = __name__.rpartition('.')[0]


class CapabilityKind(Enum):
    """Categories of pluggable strategies. Values are the class-name prefixes."""
    VM_SCHEDULER = "VmScheduler"
    ALLOCATION_POLICY = "VmAllocationPolicy"
    RESOURCE_PROVISIONER = "ResourceProvisioner"
    PE_PROVISIONER = "PeProvisioner"
    WORKLOAD_SCHEDULER = "CloudletScheduler"
    UTILIZATION_MODEL = "UtilizationModel"

    @property
    def module(self) -> str:
        return _MODULES[self]

    @property
    def contract(self) -> type:
        return _CONTRACTS[self]

    def qualified_name(self, alias: str) -> str:
        """Full ``module.Class`` name for an alias of this kind."""
        alias = alias.strip()
        if '.' in alias:
            return alias
        return f"{self.module}.{self.value}{alias}"


_MODULES: Dict[CapabilityKind, str] = {
    CapabilityKind.VM_SCHEDULER: f"{_PACKAGE}.schedulers",
    CapabilityKind.ALLOCATION_POLICY: f"{_PACKAGE}.allocation",
    CapabilityKind.RESOURCE_PROVISIONER: f"{_PACKAGE}.provisioners",
    CapabilityKind.PE_PROVISIONER: f"{_PACKAGE}.provisioners",
    CapabilityKind.WORKLOAD_SCHEDULER: f"{_PACKAGE}.schedulers",
    CapabilityKind.UTILIZATION_MODEL: f"{_PACKAGE}.utilization",
}

_CONTRACTS: Dict[CapabilityKind, type] = {
    CapabilityKind.VM_SCHEDULER: VmScheduler,
    CapabilityKind.ALLOCATION_POLICY: VmAllocationPolicy,
    CapabilityKind.RESOURCE_PROVISIONER: ResourceProvisioner,
    CapabilityKind.PE_PROVISIONER: PeProvisioner,
    CapabilityKind.WORKLOAD_SCHEDULER: WorkloadScheduler,
    CapabilityKind.UTILIZATION_MODEL: UtilizationModel,
}


class PolicyResolutionError(ValueError):
    """An alias could not be turned into a strategy instance."""

    def __init__(self, kind: CapabilityKind, alias: Any, cause: Any):
        self.kind = kind
        self.alias = alias
        self.cause = cause
        super().__init__(f"Cannot resolve {kind.value} alias '{alias}': {cause}")


def load_type(qualified_name: str) -> Any:
    """
    Import ``module.Attr`` and return the attribute.

    Raises:
        ImportError: If the name has no module part or the module can't be imported
        AttributeError: If the module has no such attribute
    """
    module_name, _, attr = qualified_name.rpartition('.')
    if not module_name:
        raise ImportError(f"'{qualified_name}' is not a module-qualified name")
    module = importlib.import_module(module_name)
    return getattr(module, attr)


class AliasRegistry:
    """
    Append-only cache of loaded implementation types, keyed by qualified name.

    Args:
        loader: Callable that loads a type from its qualified name
                (default: import the module and fetch the attribute)
    """

    def __init__(self, loader: Optional[Callable[[str], Any]] = None):
        self._types: Dict[str, Any] = {}
        self._loader = loader or load_type

    def lookup(self, qualified_name: str) -> Any:
        """Return the cached type, loading and caching it on first use."""
        klass = self._types.get(qualified_name)
        if klass is None:
            logger.debug("Loading %s", qualified_name)
            klass = self._loader(qualified_name)
            self._types[qualified_name] = klass
        return klass

    def register(self, qualified_name: str, klass: Any) -> None:
        """Pre-seed the cache with a type."""
        self._types[qualified_name] = klass

    def __contains__(self, qualified_name: str) -> bool:
        return qualified_name in self._types

    def __len__(self) -> int:
        return len(self._types)


# Shared by resolvers created without an explicit registry
DEFAULT_REGISTRY = AliasRegistry()


class PolicyResolver:
    """
    Build strategy instances from (capability kind, alias) pairs.

    Args:
        registry: Registry used to cache loaded types (default: DEFAULT_REGISTRY)
    """

    def __init__(self, registry: Optional[AliasRegistry] = None):
        self.registry = registry if registry is not None else DEFAULT_REGISTRY

    def resolve(self, kind: CapabilityKind, alias: str, *args: Any) -> Any:
        """
        Construct a new instance of the implementation named by ``alias``.

        Args:
            kind: Capability the instance must implement
            alias: Alias suffix (e.g. "TimeShared") or full ``module.Class`` path
            *args: Constructor arguments for the kind (e.g. a capacity)

        Returns:
            A fresh instance of a subclass of ``kind.contract``

        Raises:
            PolicyResolutionError: If the alias is empty or unknown, the type
                doesn't implement the contract, or its constructor rejects args
        """
        if not isinstance(alias, str) or not alias.strip():
            raise PolicyResolutionError(kind, alias, "alias is empty")

        qualified_name = kind.qualified_name(alias)
        try:
            klass = self.registry.lookup(qualified_name)
        except (ImportError, AttributeError) as e:
            raise PolicyResolutionError(kind, alias, e) from e

        if not (isinstance(klass, type) and issubclass(klass, kind.contract)):
            raise PolicyResolutionError(
                kind, alias, f"{qualified_name} does not implement {kind.contract.__name__}"
            )

        try:
            return klass(*args)
        except TypeError as e:
            raise PolicyResolutionError(kind, alias, e) from e

    def vm_scheduler(self, alias: str) -> VmScheduler:
        return self.resolve(CapabilityKind.VM_SCHEDULER, alias)

    def allocation_policy(self, alias: str) -> VmAllocationPolicy:
        return self.resolve(CapabilityKind.ALLOCATION_POLICY, alias)

    def ram_provisioner(self, alias: str, capacity: float) -> ResourceProvisioner:
        return self.resolve(CapabilityKind.RESOURCE_PROVISIONER, alias, capacity)

    def bw_provisioner(self, alias: str, capacity: float) -> ResourceProvisioner:
        return self.resolve(CapabilityKind.RESOURCE_PROVISIONER, alias, capacity)

    def pe_provisioner(self, alias: str, mips: float) -> PeProvisioner:
        return self.resolve(CapabilityKind.PE_PROVISIONER, alias, mips)

    def workload_scheduler(self, alias: str) -> WorkloadScheduler:
        return self.resolve(CapabilityKind.WORKLOAD_SCHEDULER, alias)

    def utilization_model(self, alias: str) -> UtilizationModel:
        return self.resolve(CapabilityKind.UTILIZATION_MODEL, alias)
