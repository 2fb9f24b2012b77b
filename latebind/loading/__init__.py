"""
Loading layer.

Turns a ModuleDefinition into a value:
- ModuleDefinition: where the value comes from and what it must look like
- ModuleLoader: default Loader (imports, factories, JSON/YAML resources)
- validate_loaded: applies a load schema (pydantic model, field map, check)
"""

from .definitions import LoadPackageType, ModuleDefinition, ModuleResolution
from .loaders import (
    Loader,
    ModuleLoader,
    load_from_module,
    load_json_from_package,
    load_json_resource,
    module_definition_is_async,
)
from .schema import compile_schema, is_async_check, validate_loaded

__all__ = [
    "LoadPackageType",
    "Loader",
    "ModuleDefinition",
    "ModuleLoader",
    "ModuleResolution",
    "compile_schema",
    "is_async_check",
    "load_from_module",
    "load_json_from_package",
    "load_json_resource",
    "module_definition_is_async",
    "validate_loaded",
]
