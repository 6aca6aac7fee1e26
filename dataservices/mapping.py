"""
Object mapping between persisted entities and DTOs.

This module provides the mapping collaborator used by data services:

- ``EntityOutputBuilder`` converts SQLAlchemy models (or any object) to
  Pydantic output schemas with automatic field mapping and optional overrides.
- ``EntityInputBuilder`` converts DTOs (Pydantic models, dicts, plain objects)
  to SQLAlchemy model instances, keeping only mapped column attributes.
- ``Mapper`` picks the right builder per destination type and allows custom
  mapping functions to be registered per (source, destination) pair.

Usage:
    mapper = Mapper()

    output = mapper.map(widget, WidgetOutput)
    entity = mapper.map(WidgetCreate(name="bolt"), Widget)

    mapper.register(LegacyWidget, Widget, lambda src: Widget(name=src.title))
"""

from datetime import datetime
from typing import Any, Callable, Iterable, Type, TypeVar, get_args, get_origin

from pydantic import BaseModel
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable


# Type variable for output schema
T = TypeVar("T", bound=BaseModel)
D = TypeVar("D")


class EntityOutputBuilder:
    """
    Generic builder for converting SQLAlchemy models to Pydantic schemas.

    Features:
    - Auto-maps fields with matching names
    - Handles datetime serialization
    - Allows field overrides
    """

    def __init__(self, output_class: Type[T]):
        self.output_class = output_class
        self._field_names = set(output_class.model_fields.keys())
        self._type_hints = {name: info.annotation for name, info in output_class.model_fields.items()}

    def build(self, entity: Any, **overrides: Any) -> T:
        """
        Build output from entity with optional overrides.

        Args:
            entity: SQLAlchemy model instance, dict or any attribute holder
            **overrides: Field values to override/add

        Returns:
            Instance of output_class with mapped values
        """
        data = {}

        for field_name in self._field_names:
            if field_name in overrides:
                data[field_name] = overrides[field_name]
                continue

            found, value = _read(entity, field_name)
            if not found:
                continue

            # Handle datetime serialization if schema expects string
            if isinstance(value, datetime):
                expected_type = self._type_hints.get(field_name)
                if expected_type is str or _is_optional_str(expected_type):
                    value = value.isoformat()

            data[field_name] = value

        # from_attributes lets nested schemas read loaded relationships
        return self.output_class.model_validate(data, from_attributes=True)

    def build_many(self, entities: Iterable[Any], **shared_overrides: Any) -> list[T]:
        """Build outputs for multiple entities."""
        return [self.build(entity, **shared_overrides) for entity in entities]


class EntityInputBuilder:
    """
    Builder for converting DTOs to SQLAlchemy model instances.

    Only mapped column attributes are copied; unknown fields are ignored.
    Fields the DTO leaves unset are not passed to the model, so they stay
    untouched when the entity is attached for update.
    """

    def __init__(self, model: type):
        self.model = model
        self._column_keys = {attr.key for attr in sa_inspect(model).column_attrs}

    def build(self, source: Any, **overrides: Any) -> Any:
        data = {key: value for key, value in _fields_of(source).items() if key in self._column_keys}
        data.update({k: v for k, v in overrides.items() if k in self._column_keys})
        return self.model(**data)

    def build_many(self, sources: Iterable[Any], **shared_overrides: Any) -> list[Any]:
        return [self.build(source, **shared_overrides) for source in sources]


class Mapper:
    """
    Pure value transformation between entities and DTOs.

    Resolution order for ``map(source, destination)``:
    1. A function registered for (type(source), destination)
    2. Pydantic destination: ``EntityOutputBuilder``
    3. SQLAlchemy mapped destination: ``EntityInputBuilder``
    """

    def __init__(self) -> None:
        self._custom: dict[tuple[type, type], Callable[[Any], Any]] = {}
        self._output_builders: dict[type, EntityOutputBuilder] = {}
        self._input_builders: dict[type, EntityInputBuilder] = {}

    def register(self, source: type, destination: type, func: Callable[[Any], Any]) -> "Mapper":
        """Register a custom mapping function; returns self for chaining."""
        self._custom[(source, destination)] = func
        return self

    def map(self, source: Any, destination: Type[D], **overrides: Any) -> D:
        """Map one value to the destination type."""
        if source is None:
            raise ValueError(f"Cannot map None to {destination.__name__}")

        custom = self._find_custom(type(source), destination)
        if custom is not None:
            return custom(source)

        if isinstance(destination, type) and issubclass(destination, BaseModel):
            return self._output_builder(destination).build(source, **overrides)  # type: ignore[return-value]

        if _is_mapped(destination):
            return self._input_builder(destination).build(source, **overrides)

        raise TypeError(f"No mapping from {type(source).__name__} to {destination.__name__}")

    def map_many(self, sources: Iterable[Any], destination: Type[D], **shared_overrides: Any) -> list[D]:
        """Map every value to the destination type, keeping order."""
        return [self.map(source, destination, **shared_overrides) for source in sources]

    def _find_custom(self, source: type, destination: type) -> Callable[[Any], Any] | None:
        for klass in source.__mro__:
            func = self._custom.get((klass, destination))
            if func is not None:
                return func
        return None

    def _output_builder(self, output_class: type) -> EntityOutputBuilder:
        builder = self._output_builders.get(output_class)
        if builder is None:
            builder = self._output_builders[output_class] = EntityOutputBuilder(output_class)
        return builder

    def _input_builder(self, model: type) -> EntityInputBuilder:
        builder = self._input_builders.get(model)
        if builder is None:
            builder = self._input_builders[model] = EntityInputBuilder(model)
        return builder


def build_output(entity: Any, output_class: Type[T], **overrides: Any) -> T:
    """
    Convenience function to build output from entity.

    Example:
        output = build_output(widget, WidgetOutput, tag_count=5)
    """
    builder = EntityOutputBuilder(output_class)
    return builder.build(entity, **overrides)


def _read(source: Any, name: str) -> tuple[bool, Any]:
    if isinstance(source, dict):
        return (name in source, source.get(name))
    if hasattr(source, name):
        return (True, getattr(source, name))
    return (False, None)


def _fields_of(source: Any) -> dict[str, Any]:
    if isinstance(source, BaseModel):
        return source.model_dump(exclude_unset=True)
    if isinstance(source, dict):
        return dict(source)
    if _is_mapped(type(source)):
        state = sa_inspect(source)
        return {attr.key: state.dict[attr.key] for attr in state.mapper.column_attrs if attr.key in state.dict}
    return {k: v for k, v in vars(source).items() if not k.startswith("_")}


def _is_mapped(cls: Any) -> bool:
    try:
        sa_inspect(cls)
    except NoInspectionAvailable:
        return False
    return isinstance(cls, type)


def _is_optional_str(type_hint: Any) -> bool:
    """Check if type hint is Optional[str]."""
    origin = get_origin(type_hint)
    if origin is None:
        return False

    # Handle Union types (Optional is Union[X, None])
    args = get_args(type_hint)
    if args and type(None) in args:
        non_none_args = [a for a in args if a is not type(None)]
        return len(non_none_args) == 1 and non_none_args[0] is str

    return False
