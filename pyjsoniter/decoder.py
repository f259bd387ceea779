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
import dataclasses
import enum
import inspect
import logging
import typing
from abc import ABC
from decimal import Decimal

from pyjsoniter.any import JsonAny
from pyjsoniter.binding import BindingTable
from pyjsoniter.error import (
    JsonDecodeError,
    JsonError,
    MissingPropertiesError,
    UnknownPropertyError,
)
from pyjsoniter.type_util import (
    TypeVisitor,
    infer_field,
    is_dynamic_type,
    is_subclass,
)

try:
    import numpy as np
except ImportError:
    np = None

logger = logging.getLogger(__name__)


class _NotSet:
    __slots__ = ()

    def __repr__(self):
        return "NOT_SET"

    def __bool__(self):
        return False


# Marks a scratch slot that no property has written during the current call
NOT_SET = _NotSet()


class Decoder(ABC):
    __slots__ = "jsoniter", "type_"

    def __init__(self, jsoniter, type_):
        self.jsoniter = jsoniter
        self.type_ = type_

    def decode(self, iter_):
        raise NotImplementedError


class AnyDecoder(Decoder):
    def decode(self, iter_):
        return iter_.read_any()


class JsonAnyDecoder(Decoder):
    def decode(self, iter_):
        if iter_.read_null():
            return None
        return JsonAny(iter_.read_any())


class BoolDecoder(Decoder):
    def decode(self, iter_):
        if iter_.read_null():
            return None
        return iter_.read_bool()


class IntDecoder(Decoder):
    def decode(self, iter_):
        if iter_.read_null():
            return None
        return iter_.read_int()


class FloatDecoder(Decoder):
    def decode(self, iter_):
        if iter_.read_null():
            return None
        return iter_.read_float()


class StrDecoder(Decoder):
    def decode(self, iter_):
        if iter_.read_null():
            return None
        return iter_.read_str()


class DecimalDecoder(Decoder):
    def decode(self, iter_):
        if iter_.read_null():
            return None
        return iter_.read_decimal()


class EnumDecoder(Decoder):
    def decode(self, iter_):
        if iter_.read_null():
            return None
        name = iter_.read_str()
        try:
            return self.type_[name]
        except KeyError:
            raise iter_.report_error("EnumDecoder", f"{name!r} is not a member of {self.type_.__qualname__}") from None


class NDArrayDecoder(Decoder):
    def decode(self, iter_):
        if iter_.read_null():
            return None
        return np.asarray(iter_.read_any())


class NumpyScalarDecoder(Decoder):
    def decode(self, iter_):
        if iter_.read_null():
            return None
        return self.type_(iter_.read_any())


class OptionalDecoder(Decoder):
    __slots__ = ("inner",)

    def __init__(self, jsoniter, type_, inner):
        super().__init__(jsoniter, type_)
        self.inner = inner

    def decode(self, iter_):
        if iter_.read_null():
            iter_.reset_existing_object()
            return None
        return self.inner.decode(iter_)


class CollectionDecoder(Decoder):
    __slots__ = ("elem_decoder",)

    def __init__(self, jsoniter, type_, elem_decoder):
        super().__init__(jsoniter, type_)
        self.elem_decoder = elem_decoder

    def decode(self, iter_):
        if iter_.read_null():
            return None
        values = []
        if iter_.read_array_start():
            decode = self.elem_decoder.decode
            while True:
                values.append(decode(iter_))
                if not iter_.read_more("]"):
                    break
        if self.type_ is list:
            return values
        return self.type_(values)


class TupleDecoder(Decoder):
    __slots__ = ("elem_decoders",)

    def __init__(self, jsoniter, elem_decoders):
        super().__init__(jsoniter, tuple)
        self.elem_decoders = elem_decoders

    def decode(self, iter_):
        if iter_.read_null():
            return None
        values = []
        if iter_.read_array_start():
            while True:
                if len(values) == len(self.elem_decoders):
                    raise iter_.report_error("TupleDecoder", f"expect {len(self.elem_decoders)} elements")
                values.append(self.elem_decoders[len(values)].decode(iter_))
                if not iter_.read_more("]"):
                    break
        if len(values) != len(self.elem_decoders):
            raise iter_.report_error("TupleDecoder", f"expect {len(self.elem_decoders)} elements but found {len(values)}")
        return tuple(values)


class MapDecoder(Decoder):
    __slots__ = ("key_type", "value_decoder")

    def __init__(self, jsoniter, type_, key_type, value_decoder):
        super().__init__(jsoniter, type_)
        if not (key_type in (str, int, float, typing.Any) or is_subclass(key_type, enum.Enum)):
            raise TypeError(f"Map keys should be str, int, float or an enum instead of {key_type}")
        self.key_type = key_type
        self.value_decoder = value_decoder

    def _convert_key(self, key):
        key_type = self.key_type
        if key_type is str or key_type is typing.Any:
            return key
        if is_subclass(key_type, enum.Enum):
            return key_type[key]
        return key_type(key)

    def decode(self, iter_):
        if iter_.read_null():
            return None
        result = {}
        if iter_.read_object_start():
            decode = self.value_decoder.decode
            while True:
                key = iter_.read_object_field()
                try:
                    key = self._convert_key(key)
                except (KeyError, ValueError) as e:
                    raise iter_.report_error("MapDecoder", f"invalid key {key!r}: {e}") from e
                result[key] = decode(iter_)
                if not iter_.read_more("}"):
                    break
        if self.type_ is dict:
            return result
        return self.type_(result)


_SET_ORIGINS = {set, collections.abc.Set, collections.abc.MutableSet}

_native_decoders = {
    bool: BoolDecoder,
    int: IntDecoder,
    float: FloatDecoder,
    str: StrDecoder,
    Decimal: DecimalDecoder,
    JsonAny: JsonAnyDecoder,
}


def get_native_decoder(jsoniter, type_):
    """Decoder for the built-in leaf types, None for anything else."""
    if type_ is type(None) or is_dynamic_type(type_):
        return AnyDecoder(jsoniter, typing.Any)
    decoder_cls = _native_decoders.get(type_)
    if decoder_cls is not None:
        return decoder_cls(jsoniter, type_)
    if is_subclass(type_, enum.Enum):
        return EnumDecoder(jsoniter, type_)
    if np is not None:
        if type_ is np.ndarray:
            return NDArrayDecoder(jsoniter, type_)
        if is_subclass(type_, np.generic):
            return NumpyScalarDecoder(jsoniter, type_)
    return None


class DecoderVisitor(TypeVisitor):
    """Builds the decoder of a type hint, resolving nested hints through the owning Jsoniter."""

    def __init__(self, jsoniter):
        self.jsoniter = jsoniter

    def visit_list(self, field_name, container_type, elem_type, types_path=None):
        if container_type not in (list, set, frozenset, tuple):
            container_type = set if container_type in _SET_ORIGINS else list
        return CollectionDecoder(self.jsoniter, container_type, self.jsoniter.get_decoder(elem_type))

    def visit_tuple(self, field_name, elem_types, types_path=None):
        return TupleDecoder(self.jsoniter, [self.jsoniter.get_decoder(t) for t in elem_types])

    def visit_dict(self, field_name, container_type, key_type, value_type, types_path=None):
        if container_type is not dict:
            container_type = dict
        return MapDecoder(self.jsoniter, container_type, key_type, self.jsoniter.get_decoder(value_type))

    def visit_optional(self, field_name, type_, types_path=None):
        return OptionalDecoder(self.jsoniter, type_, self.jsoniter.get_decoder(type_))

    def visit_customized(self, field_name, type_, types_path=None):
        decoder = get_native_decoder(self.jsoniter, type_)
        if decoder is not None:
            return decoder
        return ObjectDecoder.create(self.jsoniter, type_)

    def visit_other(self, field_name, type_, types_path=None):
        decoder = get_native_decoder(self.jsoniter, type_)
        if decoder is not None:
            return decoder
        if type_ in (list, set, frozenset, tuple):
            return CollectionDecoder(self.jsoniter, type_, self.jsoniter.get_decoder(typing.Any))
        if type_ is dict:
            return MapDecoder(self.jsoniter, dict, str, self.jsoniter.get_decoder(typing.Any))
        raise TypeError(f"Can't decode values of type {type_!r}")


def build_decoder(jsoniter, type_):
    return infer_field("value", type_, DecoderVisitor(jsoniter))


def _accepts_no_args(cls):
    try:
        signature = inspect.signature(cls)
    except (TypeError, ValueError):
        return False
    return all(
        p.default is not inspect.Parameter.empty or p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        for p in signature.parameters.values()
    )


class ObjectDecoder(Decoder):
    """
    Decodes a JSON object into an instance of a class by its binding table.

    `create` picks the strategy once per class: properties set directly on a
    default-constructed instance, direct fields plus setter groups invoked after the
    scan, or every value staged until the creator can be called at the end of the
    object.
    """

    __slots__ = ("desc", "table", "_no_arg_ctor")

    def __init__(self, jsoniter, cls, desc, table):
        super().__init__(jsoniter, cls)
        self.desc = desc
        self.table = table
        self._no_arg_ctor = desc.ctor.static_factory is None and _accepts_no_args(cls)

    @staticmethod
    def create(jsoniter, cls):
        desc = jsoniter.describe(cls)
        table = BindingTable.build(desc, jsoniter.registry)
        if desc.ctor.parameters:
            decoder_cls = CtorObjectDecoder
        elif desc.setters:
            decoder_cls = SetterObjectDecoder
        else:
            decoder_cls = FieldObjectDecoder
        logger.debug("Created %s for %s", decoder_cls.__name__, cls)
        return decoder_cls(jsoniter, cls, desc, table)

    def decode(self, iter_):
        try:
            return self._decode(iter_)
        except JsonError:
            raise
        except Exception as e:
            raise JsonDecodeError(f"failed to decode {self.type_.__qualname__}: {e!r}") from e

    def _decode(self, iter_):
        raise NotImplementedError

    def _new_instance(self):
        ctor = self.desc.ctor
        if ctor.static_factory is not None:
            return ctor.static_factory()
        cls = self.type_
        if self._no_arg_ctor:
            return cls()
        obj = cls.__new__(cls)
        if dataclasses.is_dataclass(cls):
            for f in dataclasses.fields(cls):
                if f.default is not dataclasses.MISSING:
                    value = f.default
                elif f.default_factory is not dataclasses.MISSING:
                    value = f.default_factory()
                else:
                    value = None
                object.__setattr__(obj, f.name, value)
        return obj

    def _take_existing(self, iter_):
        existing = iter_.reset_existing_object()
        if existing is not None and isinstance(existing, self.type_):
            return existing
        return None

    def _acquire_temp(self, iter_):
        # Popped while in use so a nested decode of the same class gets its own buffer
        temp = iter_.temp_objects.pop(self.table.temp_cache_key, None)
        if temp is None:
            return [NOT_SET] * self.table.temp_count
        for i in range(len(temp)):
            temp[i] = NOT_SET
        return temp

    def _release_temp(self, iter_, temp):
        iter_.temp_objects[self.table.temp_cache_key] = temp

    def _read_binding(self, iter_, binding, existing=None):
        # Only a caller supplied object merges, a fresh instance may hold class level defaults
        if existing is not None and binding.field is not None:
            current = getattr(existing, binding.field, None)
            value_class = binding.value_class
            if current is not None and isinstance(value_class, type) and isinstance(current, value_class):
                iter_.existing_object = current
        try:
            if binding.decoder is not None:
                return binding.decoder.decode(iter_)
            return iter_.read(binding.value_type)
        finally:
            iter_.existing_object = None

    def _set_field(self, obj, binding, value):
        if self.desc.frozen:
            object.__setattr__(obj, binding.field, value)
        else:
            setattr(obj, binding.field, value)

    def _set_to_binding(self, obj, binding, value):
        if binding.field is not None:
            self._set_field(obj, binding, value)
        else:
            getattr(obj, binding.setter)(value)

    def _on_unknown_property(self, iter_, name, extra):
        if self.desc.as_extra_for_unknown_properties:
            if self.desc.on_extra_properties is None:
                raise UnknownPropertyError(self.type_, name)
            if extra is None:
                extra = {}
            extra[name] = iter_.read_any()
        else:
            iter_.skip()
        return extra

    def _on_missing_properties(self, obj, missing):
        if self.desc.on_missing_properties is None:
            raise MissingPropertiesError(self.type_, missing)
        self._set_to_binding(obj, self.desc.on_missing_properties, missing)

    def _set_extra(self, obj, extra):
        handler = self.desc.on_extra_properties
        if extra is None or handler is None:
            return
        if handler.value_class is JsonAny:
            extra = JsonAny(extra)
        self._set_to_binding(obj, handler, extra)

    @staticmethod
    def _collect_args(parameters, temp):
        kwargs = {}
        for param in parameters:
            value = temp[param.idx]
            if value is NOT_SET:
                if param.has_default:
                    continue
                value = None
            kwargs[param.name] = value
        return kwargs

    def _apply_setters(self, obj, temp):
        for setter in self.desc.setters:
            getattr(obj, setter.method_name)(**self._collect_args(setter.parameters, temp))


class FieldObjectDecoder(ObjectDecoder):
    __slots__ = ()

    def _decode(self, iter_):
        if iter_.read_null():
            iter_.reset_existing_object()
            return None
        existing = self._take_existing(iter_)
        obj = self._new_instance() if existing is None else existing
        table = self.table
        if not iter_.read_object_start():
            if table.required_bindings:
                self._on_missing_properties(obj, table.collect_missing(0))
            return obj
        extra = None
        tracker = 0
        bindings = table.bindings
        while True:
            name = iter_.read_object_field()
            binding = bindings.get(name)
            if binding is None:
                extra = self._on_unknown_property(iter_, name, extra)
            else:
                tracker |= binding.mask
                self._set_field(obj, binding, self._read_binding(iter_, binding, existing))
            if not iter_.read_more("}"):
                break
        if tracker != table.expected_tracker:
            self._on_missing_properties(obj, table.collect_missing(tracker))
        self._set_extra(obj, extra)
        return obj


class SetterObjectDecoder(ObjectDecoder):
    __slots__ = ()

    def _decode(self, iter_):
        if iter_.read_null():
            iter_.reset_existing_object()
            return None
        existing = self._take_existing(iter_)
        obj = self._new_instance() if existing is None else existing
        table = self.table
        if not iter_.read_object_start():
            if table.required_bindings:
                self._on_missing_properties(obj, table.collect_missing(0))
            return obj
        temp = self._acquire_temp(iter_)
        try:
            extra = None
            tracker = 0
            bindings = table.bindings
            while True:
                name = iter_.read_object_field()
                binding = bindings.get(name)
                if binding is None:
                    extra = self._on_unknown_property(iter_, name, extra)
                else:
                    tracker |= binding.mask
                    if binding.field is not None:
                        self._set_field(obj, binding, self._read_binding(iter_, binding, existing))
                    else:
                        temp[binding.idx] = self._read_binding(iter_, binding)
                if not iter_.read_more("}"):
                    break
            if tracker != table.expected_tracker:
                self._on_missing_properties(obj, table.collect_missing(tracker))
            self._apply_setters(obj, temp)
            self._set_extra(obj, extra)
        finally:
            self._release_temp(iter_, temp)
        return obj


class CtorObjectDecoder(ObjectDecoder):
    __slots__ = ()

    def _decode(self, iter_):
        iter_.reset_existing_object()
        if iter_.read_null():
            return None
        table = self.table
        temp = self._acquire_temp(iter_)
        try:
            extra = None
            tracker = 0
            if iter_.read_object_start():
                bindings = table.bindings
                while True:
                    name = iter_.read_object_field()
                    binding = bindings.get(name)
                    if binding is None:
                        extra = self._on_unknown_property(iter_, name, extra)
                    else:
                        tracker |= binding.mask
                        temp[binding.idx] = self._read_binding(iter_, binding)
                    if not iter_.read_more("}"):
                        break
            missing = None
            if tracker != table.expected_tracker:
                missing = table.collect_missing(tracker)
                if self.desc.on_missing_properties is None:
                    raise MissingPropertiesError(self.type_, missing)
            obj = self._construct(iter_, temp)
            if missing is not None:
                self._on_missing_properties(obj, missing)
            for binding in self.desc.fields:
                value = temp[binding.idx]
                if value is not NOT_SET:
                    self._set_field(obj, binding, value)
            self._apply_setters(obj, temp)
            self._set_extra(obj, extra)
        finally:
            self._release_temp(iter_, temp)
        return obj

    def _construct(self, iter_, temp):
        ctor = self.desc.ctor
        key = self.table.ctor_args_cache_key
        kwargs = iter_.temp_objects.pop(key, None)
        if kwargs is None:
            kwargs = {}
        kwargs.clear()
        kwargs.update(self._collect_args(ctor.parameters, temp))
        try:
            if ctor.static_factory is not None:
                return ctor.static_factory(**kwargs)
            return ctor.ctor(**kwargs)
        finally:
            kwargs.clear()
            iter_.temp_objects[key] = kwargs
