# Licensed to the Apache Software Foundation (ASF) under one
# or more contributor license agreements.  See the NOTICE file
# distributed with this work for additional information
# regarding copyright ownership.  The ASF licenses this file
# to you under the Apache License, Version 2.0 (the
# "License"); you may not use this file except in compliance
# with the License.  You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY
# KIND, either express or implied.  See the License for the
# specific language governing permissions and limitations
# under the License.

from __future__ import annotations

"""
Property metadata for JSON binding.

This module provides the `field()` function and the decorators that describe how
a class is bound to JSON objects.

Example:
    @pyjsoniter.json_object(as_extra_for_unknown_properties=True)
    @dataclass
    class User:
        id: int = pyjsoniter.field(required=True)                     # must be present
        name: str = pyjsoniter.field("userName", aliases=["name"])    # renamed, two accepted names
        password: str = pyjsoniter.field(reject=True, default=None)   # must never be sent
        extras: dict = pyjsoniter.field(extra_properties=True, default=None)

    class Point:
        label: str = ""

        @pyjsoniter.creator(x=pyjsoniter.prop(required=True))
        def __init__(self, x: int, y: int = 0):
            self.x = x
            self.y = y
"""

import dataclasses
from dataclasses import MISSING
from typing import Any, Callable, Mapping, Optional, Sequence

# Key used to store binding metadata in field.metadata
JSONITER_FIELD_METADATA_KEY = "__jsoniter__"
JSONITER_OBJECT_ATTR = "__jsoniter_object__"
CREATOR_ATTR = "__jsoniter_creator__"
SETTER_ATTR = "__jsoniter_setter__"
HANDLER_ATTR = "__jsoniter_handler__"

MISSING_PROPERTIES = "missing_properties"
EXTRA_PROPERTIES = "extra_properties"


@dataclasses.dataclass(frozen=True)
class JsonPropertyMeta:
    """
    Binding metadata of one property.

    Attributes:
        name: Name written when encoding, and accepted when decoding unless `aliases` is given.
        aliases: Names accepted when decoding. Defaults to `[name]`.
        required: Decoding fails (or the missing-properties handler is called) when absent.
        reject: Decoding fails when the property is present.
        decoder: Decoder used instead of the one resolved from the declared type.
        encoder: Encoder used instead of the one resolved from the declared type.
        ignore: The property is neither decoded nor encoded.
        handler: `MISSING_PROPERTIES` or `EXTRA_PROPERTIES` when the field receives those.
    """

    name: Optional[str] = None
    aliases: Optional[Sequence[str]] = None
    required: bool = False
    reject: bool = False
    decoder: Any = None
    encoder: Any = None
    ignore: bool = False
    handler: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class JsonObjectMeta:
    as_extra_for_unknown_properties: bool = False


def prop(
    name: str = None,
    *,
    aliases: Sequence[str] = None,
    required: bool = False,
    reject: bool = False,
    decoder=None,
    encoder=None,
    ignore: bool = False,
) -> JsonPropertyMeta:
    """Property metadata for constructor/setter parameters and `typing.Annotated` hints."""
    if name is not None and not isinstance(name, str):
        raise TypeError(f"name must be a str, got {type(name).__name__}")
    if aliases is not None:
        if isinstance(aliases, str):
            raise TypeError("aliases must be a sequence of names, not a str")
        aliases = tuple(aliases)
        if not aliases:
            raise ValueError("aliases must contain at least one name")
    if required and reject:
        raise ValueError("a property can't be both required and rejected")
    return JsonPropertyMeta(
        name=name,
        aliases=aliases,
        required=required,
        reject=reject,
        decoder=decoder,
        encoder=encoder,
        ignore=ignore,
    )


def field(
    name: str = None,
    *,
    aliases: Sequence[str] = None,
    required: bool = False,
    reject: bool = False,
    decoder=None,
    encoder=None,
    ignore: bool = False,
    missing_properties: bool = False,
    extra_properties: bool = False,
    # Standard dataclass.field() options (passthrough)
    default: Any = MISSING,
    default_factory: Optional[Callable[[], Any]] = MISSING,
    init: bool = True,
    repr: bool = True,
    hash: Optional[bool] = None,
    compare: bool = True,
    metadata: Optional[Mapping[str, Any]] = None,
    **kwargs,
) -> Any:
    """
    Create a dataclass field with JSON binding metadata.

    Args:
        name: JSON property name, defaults to the attribute name.
        aliases: Accepted JSON names when decoding, defaults to `[name]`.
        required: Report the property when it is absent from the JSON object.
        reject: Fail decoding when the property is present in the JSON object.
        decoder, encoder: Explicit decoder/encoder for this property.
        ignore: Exclude the field from binding.
        missing_properties: This field receives the list of missing required properties.
        extra_properties: This field receives unknown properties captured as extras.

        default, default_factory, init, repr, hash, compare, metadata:
            Standard dataclass.field() parameters, passed through.
    """
    if missing_properties and extra_properties:
        raise ValueError("a field can't receive both missing and extra properties")
    meta = prop(
        name,
        aliases=aliases,
        required=required,
        reject=reject,
        decoder=decoder,
        encoder=encoder,
        ignore=ignore,
    )
    if missing_properties:
        meta = dataclasses.replace(meta, handler=MISSING_PROPERTIES)
    elif extra_properties:
        meta = dataclasses.replace(meta, handler=EXTRA_PROPERTIES)

    combined_metadata = dict(metadata) if metadata else {}
    combined_metadata[JSONITER_FIELD_METADATA_KEY] = meta

    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        init=init,
        repr=repr,
        hash=hash,
        compare=compare,
        metadata=combined_metadata,
        **kwargs,
    )


def extract_field_meta(dataclass_field: dataclasses.Field) -> Optional[JsonPropertyMeta]:
    if dataclass_field.metadata is None:
        return None
    return dataclass_field.metadata.get(JSONITER_FIELD_METADATA_KEY)


def extract_annotated_meta(extras) -> Optional[JsonPropertyMeta]:
    for extra in extras:
        if isinstance(extra, JsonPropertyMeta):
            return extra
    return None


def json_object(cls=None, *, as_extra_for_unknown_properties: bool = False):
    """Class decorator configuring how unknown properties are treated."""

    def wrap(klass):
        setattr(klass, JSONITER_OBJECT_ATTR, JsonObjectMeta(as_extra_for_unknown_properties))
        return klass

    if cls is None:
        return wrap
    return wrap(cls)


def get_object_meta(cls) -> JsonObjectMeta:
    return getattr(cls, JSONITER_OBJECT_ATTR, None) or JsonObjectMeta()


def _check_param_props(param_props):
    for param_name, meta in param_props.items():
        if not isinstance(meta, JsonPropertyMeta):
            raise TypeError(f"{param_name} must be described with pyjsoniter.prop(), got {meta!r}")


def creator(func=None, **param_props):
    """Mark `__init__` or a static/class factory as the constructor bound to JSON."""

    def wrap(f):
        _check_param_props(param_props)
        setattr(_unwrap_method(f), CREATOR_ATTR, dict(param_props))
        return f

    if func is None:
        return wrap
    return wrap(func)


def setter(func=None, **param_props):
    """Mark a method whose parameters are set together once the object is read."""

    def wrap(f):
        _check_param_props(param_props)
        setattr(f, SETTER_ATTR, dict(param_props))
        return f

    if func is None:
        return wrap
    return wrap(func)


def missing_properties(func):
    """Mark a one-argument method receiving the names of absent required properties."""
    setattr(func, HANDLER_ATTR, MISSING_PROPERTIES)
    return func


def extra_properties(func):
    """Mark a one-argument method receiving unknown properties."""
    setattr(func, HANDLER_ATTR, EXTRA_PROPERTIES)
    return func


def _unwrap_method(f):
    return getattr(f, "__func__", f)
