"""
Module Loaders.

The default Loader used by BindingResolver. Given a LoaderSpec it produces
the value (or an awaitable of the value) that it describes.

Dispatch:
    ModuleResolution.JSON           -> load_json_resource (JSON/YAML file)
    LoadPackageType.JSON            -> load_json_from_package (module attribute)
    otherwise                       -> load_from_module (factory, class, attribute)

Every failure is raised as LoadError (or SchemaValidationError), so the
resolver can record it on the binding's result.

Usage:
    loader = ModuleLoader(base_dir="config/")
    value = loader.load(LoaderSpec(ModuleDefinition(module_name="feature.json",
                                                    module_resolution=ModuleResolution.JSON)))
"""

from __future__ import annotations

import importlib
import inspect
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Protocol

import yaml

from ..errors import LoadError
from .definitions import LoadPackageType, ModuleDefinition, ModuleResolution
from .schema import is_async_check, validate_loaded

if TYPE_CHECKING:
    from ..bindings import LoaderSpec

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml"}


class Loader(Protocol):
    """Protocol for anything that can satisfy a LoaderSpec."""

    def load(self, spec: LoaderSpec) -> Any | Awaitable[Any]:
        """Load a value; raise LoadError on failure."""
        ...


def module_definition_is_async(definition: ModuleDefinition) -> bool:
    """Static hint: will loading ``definition`` probably suspend?"""
    return definition.async_factory or is_async_check(definition.load_schema)


# =============================================================================
# Loading functions
# =============================================================================


def load_json_resource(definition: ModuleDefinition, base_dir: Path | None = None) -> Any:
    """
    Load a JSON or YAML document from disk.

    Relative paths are resolved against ``base_dir`` (the current directory
    when omitted).
    """
    path = Path(definition.module_name)
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path

    try:
        with path.open(encoding="utf-8") as f:
            if path.suffix.lower() in _YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except FileNotFoundError as e:
        raise LoadError(f"Resource not found: {path}", cause=e) from e
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise LoadError(f"Failed to read resource {path}: {e}", cause=e) from e

    logger.debug(f"[loader] Loaded resource {path}")
    return validate_loaded(data, definition.load_schema)


def load_json_from_package(definition: ModuleDefinition) -> Any:
    """
    Load JSON held in a module attribute.

    The attribute (``property_name``, dotted) may hold a JSON string, which is
    parsed, or an already-decoded structure, which is used as is.
    """
    if not definition.property_name:
        raise LoadError(
            f"property_name is required to load JSON from module {definition.module_name!r}"
        )

    module = _import(definition.module_name)
    data = _resolve_attribute(module, definition.property_name, definition.module_name)

    if isinstance(data, str | bytes):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise LoadError(
                f"Attribute {definition.property_name!r} of {definition.module_name!r} "
                f"is not valid JSON: {e}",
                cause=e,
            ) from e

    return validate_loaded(data, definition.load_schema)


def load_from_module(definition: ModuleDefinition) -> Any | Awaitable[Any]:
    """
    Load an object from a module.

    Resolution order:
        1. function_name    -> call the factory with params
        2. constructor_name -> instantiate the class with params
        3. property_name    -> read the (dotted) attribute
        4. the module itself
    """
    module = _import(definition.module_name)

    if definition.function_name:
        factory = _resolve_attribute(module, definition.function_name, definition.module_name)
        if not callable(factory):
            raise LoadError(
                f"{definition.module_name}.{definition.function_name} is not callable"
            )
        try:
            produced = factory(*definition.params)
        except Exception as e:
            raise LoadError(
                f"Factory {definition.module_name}.{definition.function_name} raised: {e}",
                cause=e,
            ) from e
    elif definition.constructor_name:
        cls = _resolve_attribute(module, definition.constructor_name, definition.module_name)
        if not isinstance(cls, type):
            raise LoadError(f"{definition.module_name}.{definition.constructor_name} is not a class")
        try:
            produced = cls(*definition.params)
        except Exception as e:
            raise LoadError(
                f"Constructor {definition.module_name}.{definition.constructor_name} raised: {e}",
                cause=e,
            ) from e
    elif definition.property_name:
        produced = _resolve_attribute(module, definition.property_name, definition.module_name)
    else:
        produced = module

    if inspect.isawaitable(produced):
        return _finish_async_factory(definition, produced)
    return validate_loaded(produced, definition.load_schema)


async def _finish_async_factory(definition: ModuleDefinition, pending: Awaitable[Any]) -> Any:
    try:
        value = await pending
    except Exception as e:
        raise LoadError(
            f"Async factory {definition.module_name}.{definition.function_name} failed: {e}",
            cause=e,
        ) from e
    validated = validate_loaded(value, definition.load_schema)
    if inspect.isawaitable(validated):
        return await validated
    return validated


def _import(module_name: str) -> Any:
    try:
        return importlib.import_module(module_name)
    except ImportError as e:
        raise LoadError(f"Cannot import module {module_name!r}: {e}", cause=e) from e


def _resolve_attribute(root: Any, dotted: str, module_name: str) -> Any:
    current = root
    for part in dotted.split("."):
        try:
            current = getattr(current, part)
        except AttributeError:
            if isinstance(current, dict) and part in current:
                current = current[part]
                continue
            raise LoadError(f"Module {module_name!r} has no attribute path {dotted!r}") from None
    return current


# =============================================================================
# Loader implementation
# =============================================================================


class ModuleLoader:
    """
    Default loader for bindings.

    Loads from importable modules and JSON/YAML resources, applying the
    definition's load schema. Loading is synchronous unless the factory or
    the schema check is asynchronous, in which case an awaitable is returned.
    """

    def __init__(self, base_dir: str | Path | None = None):
        """
        Initialize loader.

        Args:
            base_dir: Directory for relative resource paths
                (defaults to the configured LATEBIND_BASE_DIR)
        """
        if base_dir is None:
            from ..config import get_settings

            base_dir = get_settings().base_dir
        self._base_dir = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def load(self, spec: LoaderSpec) -> Any | Awaitable[Any]:
        definition = spec.module
        if definition.module_resolution == ModuleResolution.JSON:
            return load_json_resource(definition, self._base_dir)
        if spec.load_package_type == LoadPackageType.JSON:
            return load_json_from_package(definition)
        return load_from_module(definition)

    def __repr__(self) -> str:
        return f"ModuleLoader(base_dir='{self._base_dir}')"
