"""
Module definitions.

A ModuleDefinition describes WHERE a late-bound value comes from and,
optionally, what it must look like once loaded. It is plain data so it can be
written in JSON/YAML configuration and validated with pydantic.

Usage:
    # A factory function in an importable module
    ModuleDefinition(module_name="myapp.plugins", function_name="create", params=["x"])

    # A JSON document on disk, checked against a schema
    ModuleDefinition(
        module_name="config/feature.json",
        module_resolution=ModuleResolution.JSON,
        load_schema={"name": str, "id": int},
    )
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ModuleResolution(str, Enum):
    """How ``module_name`` is interpreted."""

    MODULE = "module"  # dotted import path
    JSON = "json"  # JSON or YAML file path


class LoadPackageType(str, Enum):
    """What to take out of an imported module."""

    OBJECT = "object"  # factory result, class instance, attribute or module
    JSON = "json"  # JSON held in a module attribute


class ModuleDefinition(BaseModel):
    """
    Reference to a loadable value.

    Attributes:
        module_name: Import path, or file path for ModuleResolution.JSON
        function_name: Factory function to call with ``params``
        constructor_name: Class to instantiate with ``params``
        property_name: Dotted attribute path inside the module
        params: Positional arguments for the factory/constructor
        module_resolution: How to interpret ``module_name``
        load_schema: Optional pydantic model, field mapping or check callable
        async_factory: Hint that the factory returns an awaitable
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    module_name: str = Field(..., min_length=1, description="Import path or resource path")
    function_name: str | None = Field(None, description="Factory function name")
    constructor_name: str | None = Field(None, description="Class name to instantiate")
    property_name: str | None = Field(None, description="Dotted attribute path")
    params: list[Any] = Field(default_factory=list, description="Factory/constructor arguments")
    module_resolution: ModuleResolution = ModuleResolution.MODULE
    load_schema: Any = Field(None, description="Schema applied to the loaded value")
    async_factory: bool = Field(False, description="Factory returns an awaitable")

    @model_validator(mode="after")
    def _check_single_entry_point(self) -> ModuleDefinition:
        if self.function_name and self.constructor_name:
            raise ValueError("function_name and constructor_name are mutually exclusive")
        return self
