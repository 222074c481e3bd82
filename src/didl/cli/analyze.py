"""Model analysis CLI command."""

from __future__ import annotations

import importlib.util
import inspect
import sys
from pathlib import Path

from ..codec.schema import ModelSchema
from ..codec.table import TypeTable
from ..models.base import IDLModel
from ..utils.hashing import idl_hash


def analyze_file(file_path: Path) -> None:
    """Analyze all IDLModel classes in a Python file.

    Args:
        file_path: Path to Python file containing model definitions
    """
    spec = importlib.util.spec_from_file_location("user_module", file_path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Could not load module from {file_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules["user_module"] = module
    spec.loader.exec_module(module)

    model_classes = [
        obj
        for _name, obj in inspect.getmembers(module, inspect.isclass)
        if obj is not IDLModel and issubclass(obj, IDLModel) and obj.__module__ == "user_module"
    ]

    if not model_classes:
        print(f"No IDLModel classes found in {file_path}")
        return

    print(f"{len(model_classes)} model{'s' if len(model_classes) != 1 else ''} loaded.")
    print()

    for model_class in model_classes:
        analyze_model_class(model_class)


def analyze_model_class(model_class: type[IDLModel]) -> None:
    """Print the record type of a model and the id of each field.

    Args:
        model_class: Model class to analyze
    """
    print(f"{'=' * 19} {model_class.__name__} {'=' * 19}")

    schema = ModelSchema.from_model(model_class)
    table = TypeTable.build([schema.idl_type])
    print(f"type: {schema.idl_type.name}")
    print(f"type table: {len(table)} entries, {len(table.to_bytes())} bytes")
    print()

    print(f"{'-' * 27} Fields {'-' * 27}")
    # Wire order is ascending field id
    ordered = sorted(schema.fields, key=lambda f: idl_hash(f.name))
    for i, field_schema in enumerate(ordered, 1):
        field_desc = f"{i}. {field_schema.name}"
        field_id = str(idl_hash(field_schema.name))
        dots = "." * max(1, 40 - len(field_desc) - len(field_id))
        required = "" if field_schema.required else " (optional)"
        print(f"        {field_desc}{dots}{field_id} {field_schema.idl_type.name}{required}")
    print()
