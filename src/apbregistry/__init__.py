"""apbregistry: enumerate registry images and extract their bundle specs."""

from apbregistry.config import AdapterConfig, effective_tag, load_config
from apbregistry.spec import ParameterDescriptor, Plan, Spec

__all__ = [
    "AdapterConfig",
    "ParameterDescriptor",
    "Plan",
    "Spec",
    "effective_tag",
    "load_config",
]
