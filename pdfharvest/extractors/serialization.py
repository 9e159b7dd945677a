import typing
from dataclasses import fields, is_dataclass

# Type marker key used for serialization/deserialization
_TYPE_KEY = "_type"

# Registry mapping type names to classes (populated lazily)
_TYPE_REGISTRY: dict[str, type] = {}

# Fields that never leave the process (raw input bytes)
_EXCLUDED_FIELDS = {"data"}


def _serialize_for_json(value: typing.Any) -> typing.Any:
    if is_dataclass(value) and not isinstance(value, type):
        result = {
            _TYPE_KEY: type(value).__name__,
        }
        for item in fields(value):
            if item.name in _EXCLUDED_FIELDS:
                continue
            result[item.name] = _serialize_for_json(getattr(value, item.name))
        return result
    if isinstance(value, dict):
        return {str(key): _serialize_for_json(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize_for_json(item) for item in value]
    return value


def serialize_extraction(value: typing.Any) -> dict:
    serialized = _serialize_for_json(value)
    if isinstance(serialized, dict):
        return serialized
    return {"value": serialized}


def _get_type_registry() -> dict[str, type]:
    """Lazily populate and return the type registry."""
    if _TYPE_REGISTRY:
        return _TYPE_REGISTRY

    from pdfharvest.extractors import data_types

    for name in dir(data_types):
        obj = getattr(data_types, name)
        if isinstance(obj, type) and is_dataclass(obj):
            _TYPE_REGISTRY[name] = obj

    return _TYPE_REGISTRY


def _deserialize_value(value: typing.Any) -> typing.Any:
    if isinstance(value, dict):
        if _TYPE_KEY in value:
            return _deserialize_dataclass(value)
        return {k: _deserialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_deserialize_value(item) for item in value]
    return value


def _deserialize_dataclass(data: dict) -> typing.Any:
    registry = _get_type_registry()
    type_name = data.get(_TYPE_KEY)
    if type_name not in registry:
        raise KeyError(f"Unknown type for deserialization: {type_name}")
    cls = registry[type_name]

    kwargs = {}
    for item in fields(cls):
        if item.name in data:
            kwargs[item.name] = _deserialize_value(data[item.name])
    return cls(**kwargs)


def deserialize_extraction(data: dict) -> typing.Any:
    """
    Rebuild a result from a dictionary produced by ``serialize_extraction``.

    Raises:
        ValueError: If the data doesn't contain valid type information
        KeyError: If the type name is not recognized
    """
    if not isinstance(data, dict):
        raise ValueError("Input must be a dictionary")

    if _TYPE_KEY not in data:
        raise ValueError(
            f"Input dictionary must contain '{_TYPE_KEY}' key for deserialization"
        )

    return _deserialize_dataclass(data)
