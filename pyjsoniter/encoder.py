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

import collections.abc
import enum
import logging
import typing
from abc import ABC
from decimal import Decimal
from json.encoder import encode_basestring

from pyjsoniter.any import JsonAny
from pyjsoniter.error import JsonEncodeError
from pyjsoniter.type_util import (
    is_dynamic_type,
    is_subclass,
    split_type,
    unwrap_annotated,
    unwrap_optional,
)

try:
    import numpy as np
except ImportError:
    np = None

logger = logging.getLogger(__name__)

ENUM_SHAPE = "enum"
ARRAY_SHAPE = "array"
MAP_SHAPE = "map"
COLLECTION_SHAPE = "collection"
OBJECT_SHAPE = "object"


class Encoder(ABC):
    __slots__ = "jsoniter", "type_"

    def __init__(self, jsoniter, type_):
        self.jsoniter = jsoniter
        self.type_ = type_

    def encode(self, obj, stream):
        raise NotImplementedError


class NullEncoder(Encoder):
    def encode(self, obj, stream):
        stream.write_null()


class DynamicEncoder(Encoder):
    """Dispatches on the run-time class of each value."""

    def encode(self, obj, stream):
        if obj is None:
            stream.write_null()
            return
        if type(obj) is object:
            raise JsonEncodeError("can't encode a bare object instance")
        stream.write_val(obj)


class BoolEncoder(Encoder):
    def encode(self, obj, stream):
        stream.write_bool(obj)


class IntEncoder(Encoder):
    def encode(self, obj, stream):
        stream.write_int(obj)


class FloatEncoder(Encoder):
    def encode(self, obj, stream):
        stream.write_float(obj)


class StrEncoder(Encoder):
    def encode(self, obj, stream):
        stream.write_str(obj)


class DecimalEncoder(Encoder):
    def encode(self, obj, stream):
        if not obj.is_finite():
            raise JsonEncodeError(f"{obj} is not a valid JSON number")
        stream.write_raw(str(obj))


class JsonAnyEncoder(Encoder):
    def encode(self, obj, stream):
        stream.write_val(obj.to_python())


class NumpyScalarEncoder(Encoder):
    def encode(self, obj, stream):
        stream.write_val(obj.item())


_native_encoders = {
    type(None): NullEncoder,
    bool: BoolEncoder,
    int: IntEncoder,
    float: FloatEncoder,
    str: StrEncoder,
    Decimal: DecimalEncoder,
    JsonAny: JsonAnyEncoder,
}


def get_native_encoder(jsoniter, type_):
    """Encoder for the built-in leaf types, None for anything else."""
    type_, _ = unwrap_annotated(type_)
    if is_dynamic_type(type_):
        return DynamicEncoder(jsoniter, typing.Any)
    encoder_cls = _native_encoders.get(type_)
    if encoder_cls is not None:
        return encoder_cls(jsoniter, type_)
    if np is not None and is_subclass(type_, np.generic):
        return NumpyScalarEncoder(jsoniter, type_)
    return None


def encoder_shape(cls):
    if is_subclass(cls, enum.Enum):
        return ENUM_SHAPE
    if cls is tuple or (np is not None and cls is np.ndarray):
        return ARRAY_SHAPE
    if is_subclass(cls, collections.abc.Mapping):
        return MAP_SHAPE
    if is_subclass(cls, collections.abc.Collection) and not is_subclass(cls, (str, bytes, bytearray)):
        return COLLECTION_SHAPE
    return OBJECT_SHAPE


def declared_type(type_):
    """
    Returns the hint used to encode a value whose run-time class matches the
    declaration, and that class. Both are None for dynamically typed values.
    """
    type_, _ = unwrap_annotated(type_)
    type_, _ = unwrap_optional(type_)
    if is_dynamic_type(type_):
        return None, None
    cls, _ = split_type(type_)
    if not isinstance(cls, type):
        return None, None
    return type_, cls


def map_key(key):
    if type(key) is str:
        return key
    if isinstance(key, enum.Enum):
        return key.name
    if key is None:
        return "null"
    if isinstance(key, bool):
        return "true" if key else "false"
    if isinstance(key, (int, float, Decimal)):
        return str(key)
    raise JsonEncodeError(f"can't use {key!r} of {type(key)} as a JSON object key")


def _write_declared(stream, value, hint, cls):
    if value is None:
        stream.write_null()
    elif cls is not None and type(value) is cls:
        stream.write_val(value, hint)
    else:
        stream.write_val(value)


class EnumEncoder(Encoder):
    def encode(self, obj, stream):
        stream.write_str(obj.name)


class CollectionEncoder(Encoder):
    __slots__ = ("elem_hint", "elem_class")

    def __init__(self, jsoniter, type_, elem_type=typing.Any):
        super().__init__(jsoniter, type_)
        self.elem_hint, self.elem_class = declared_type(elem_type)

    def encode(self, obj, stream):
        stream.write_array_start()
        first = True
        for value in obj:
            if first:
                first = False
            else:
                stream.write_more()
            _write_declared(stream, value, self.elem_hint, self.elem_class)
        stream.write_array_end()


class ArrayEncoder(Encoder):
    """Fixed-shape tuples position by position, numpy arrays through their nested lists."""

    __slots__ = ("elem_types",)

    def __init__(self, jsoniter, type_, elem_types=()):
        super().__init__(jsoniter, type_)
        self.elem_types = [declared_type(t) for t in elem_types]

    def encode(self, obj, stream):
        if np is not None and isinstance(obj, np.ndarray):
            obj = obj.tolist()
        elem_types = self.elem_types
        if elem_types and len(obj) != len(elem_types):
            raise JsonEncodeError(f"expect {len(elem_types)} elements but found {len(obj)}")
        stream.write_array_start()
        for i, value in enumerate(obj):
            if i:
                stream.write_more()
            if elem_types:
                hint, cls = elem_types[i]
                _write_declared(stream, value, hint, cls)
            else:
                stream.write_val(value)
        stream.write_array_end()


class MapEncoder(Encoder):
    __slots__ = ("value_hint", "value_class")

    def __init__(self, jsoniter, type_, value_type=typing.Any):
        super().__init__(jsoniter, type_)
        self.value_hint, self.value_class = declared_type(value_type)

    def encode(self, obj, stream):
        stream.write_object_start()
        first = True
        for key, value in obj.items():
            if first:
                first = False
            else:
                stream.write_more()
            stream.write_object_field(map_key(key))
            _write_declared(stream, value, self.value_hint, self.value_class)
        stream.write_object_end()


def property_read_error(obj, name, error):
    return f"failed to encode {type(obj).__qualname__}: can't read property {name!r}: {error}"


class ObjectEncoder(Encoder):
    """Writes the encode bindings of a class as the properties of a JSON object."""

    __slots__ = ("_properties",)

    def __init__(self, jsoniter, cls, desc):
        super().__init__(jsoniter, cls)
        properties = []
        for binding in desc.encode_bindings:
            encoder = binding.encoder or jsoniter.registry.lookup_property_encoder(binding)
            hint, value_class = declared_type(binding.value_type)
            properties.append((encode_basestring(binding.to_name) + ":", binding.field, encoder, hint, value_class))
        self._properties = properties

    def encode(self, obj, stream):
        stream.write_object_start()
        first = True
        for prefix, field_name, encoder, hint, value_class in self._properties:
            if first:
                first = False
            else:
                stream.write_more()
            stream.write_raw(prefix)
            try:
                value = getattr(obj, field_name)
            except AttributeError as e:
                raise JsonEncodeError(property_read_error(obj, field_name, e)) from e
            if value is not None and encoder is not None:
                encoder.encode(value, stream)
            else:
                _write_declared(stream, value, hint, value_class)
        stream.write_object_end()


def _tuple_elem_types(type_args):
    if len(type_args) == 2 and type_args[1] is Ellipsis:
        return None
    return type_args


def build_reflection_encoder(jsoniter, type_):
    """Builds an encoder from the run-time shape of `type_`, resolving nested encoders on demand."""
    cls, type_args = split_type(unwrap_annotated(type_)[0])
    shape = encoder_shape(cls)
    if shape == ENUM_SHAPE:
        return EnumEncoder(jsoniter, cls)
    if shape == ARRAY_SHAPE:
        if cls is tuple and type_args:
            elem_types = _tuple_elem_types(type_args)
            if elem_types is None:
                return CollectionEncoder(jsoniter, type_, type_args[0])
            return ArrayEncoder(jsoniter, type_, elem_types)
        return ArrayEncoder(jsoniter, type_)
    if shape == MAP_SHAPE:
        return MapEncoder(jsoniter, type_, type_args[1] if type_args else typing.Any)
    if shape == COLLECTION_SHAPE:
        return CollectionEncoder(jsoniter, type_, type_args[0] if type_args else typing.Any)
    return ObjectEncoder(jsoniter, cls, jsoniter.describe(cls))


class GeneratedEncoder(Encoder):
    """Encoder whose `encode` runs a function compiled from generated source."""

    __slots__ = ("_encode", "source")

    def __init__(self, jsoniter, type_, encode_func, source=None):
        super().__init__(jsoniter, type_)
        self._encode = encode_func
        self.source = source

    def encode(self, obj, stream):
        self._encode(obj, stream)

    def __repr__(self):
        return f"{type(self).__name__}({self.type_!r})"
