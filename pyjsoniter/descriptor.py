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

import dataclasses
import inspect
import logging
import typing
from typing import Any, Callable, List, Optional

from pyjsoniter.error import TypeBindingError
from pyjsoniter.field import (
    CREATOR_ATTR,
    EXTRA_PROPERTIES,
    HANDLER_ATTR,
    MISSING_PROPERTIES,
    SETTER_ATTR,
    JsonPropertyMeta,
    extract_annotated_meta,
    extract_field_meta,
    get_object_meta,
)
from pyjsoniter.type_util import split_type, unwrap_annotated, unwrap_optional

logger = logging.getLogger(__name__)

_DEFAULT_META = JsonPropertyMeta()


@dataclasses.dataclass(eq=False)
class Binding:
    """One bindable property of a type."""

    # Identity
    name: str  # Attribute or parameter name, used in error reports
    owner: type
    value_type: Any = Any
    from_names: List[str] = None  # Accepted names when decoding
    to_name: str = None  # Name written when encoding

    # Overrides and policies
    decoder: Any = None
    encoder: Any = None
    required: bool = False
    rejected: bool = False

    # Exactly one target: an attribute, a handler method, or a parameter position
    field: Optional[str] = None
    setter: Optional[str] = None
    param_index: int = -1
    has_default: bool = False

    # Assigned by the binding table
    idx: int = -1
    mask: int = 0

    def __post_init__(self):
        if self.to_name is None:
            self.to_name = self.name
        if not self.from_names:
            self.from_names = [self.to_name]

    @property
    def value_class(self):
        """Raw class of the declared type, with Optional and generic arguments stripped."""
        unwrapped, _ = unwrap_optional(unwrap_annotated(self.value_type)[0])
        return split_type(unwrapped)[0]

    def __repr__(self):
        return f"Binding(name={self.name!r}, from_names={self.from_names}, idx={self.idx})"


@dataclasses.dataclass(eq=False)
class ConstructorDescriptor:
    parameters: List[Binding] = dataclasses.field(default_factory=list)
    # The class itself for `__init__`, None for the default construction path
    ctor: Optional[Callable] = None
    static_factory: Optional[Callable] = None

    @property
    def usable(self):
        return self.ctor is not None or self.static_factory is not None


@dataclasses.dataclass(eq=False)
class SetterDescriptor:
    method_name: str
    parameters: List[Binding]


@dataclasses.dataclass(eq=False)
class ClassDescriptor:
    cls: type
    ctor: ConstructorDescriptor
    fields: List[Binding] = dataclasses.field(default_factory=list)
    setters: List[SetterDescriptor] = dataclasses.field(default_factory=list)
    on_missing_properties: Optional[Binding] = None
    on_extra_properties: Optional[Binding] = None
    as_extra_for_unknown_properties: bool = False
    encode_bindings: List[Binding] = dataclasses.field(default_factory=list)
    frozen: bool = False

    def all_bindings(self):
        """Decoding bindings in table-build order: constructor, fields, setters."""
        yield from self.ctor.parameters
        yield from self.fields
        for setter in self.setters:
            yield from setter.parameters


def _get_type_hints(obj, cls):
    try:
        return typing.get_type_hints(obj, localns={cls.__name__: cls}, include_extras=True)
    except (NameError, TypeError) as e:
        raise TypeBindingError(f"can't resolve type hints of {obj!r}: {e}") from e


def _binding_from_meta(name, owner, hint, meta, **kwargs):
    value_type, extras = unwrap_annotated(hint)
    meta = meta or extract_annotated_meta(extras) or _DEFAULT_META
    return meta, Binding(
        name=name,
        owner=owner,
        value_type=value_type,
        from_names=list(meta.aliases) if meta.aliases else None,
        to_name=meta.name,
        decoder=meta.decoder,
        encoder=meta.encoder,
        required=meta.required,
        rejected=meta.reject,
        **kwargs,
    )


class DescriptorProvider:
    """
    Builds a ClassDescriptor by introspecting a class.

    Dataclass fields and class annotations become field bindings, the parameters of a
    `pyjsoniter.creator` become constructor bindings, and `pyjsoniter.setter` methods
    become setter groups. The result only depends on the class, so a provider may be
    called repeatedly for the same type.
    """

    def describe(self, cls: type) -> ClassDescriptor:
        logger.info("Describing type %s for json binding", cls)
        if not isinstance(cls, type):
            raise TypeBindingError(f"{cls!r} is not a class")
        type_hints = _get_type_hints(cls, cls)
        ctor_member, setter_members, handler_members = self._scan_members(cls)
        desc = ClassDescriptor(
            cls=cls,
            ctor=self._describe_ctor(cls, ctor_member),
            as_extra_for_unknown_properties=get_object_meta(cls).as_extra_for_unknown_properties,
            frozen=dataclasses.is_dataclass(cls) and cls.__dataclass_params__.frozen,
        )
        ctor_names = {param.name for param in desc.ctor.parameters}
        for name, hint, meta in self._iter_declared_fields(cls, type_hints):
            if meta is not None and meta.ignore:
                continue
            meta, binding = _binding_from_meta(name, cls, hint, meta, field=name)
            if meta.handler is not None:
                self._set_handler(desc, meta.handler, binding)
                continue
            desc.encode_bindings.append(binding)
            if name not in ctor_names:
                desc.fields.append(binding)
        encoded_names = {binding.name for binding in desc.encode_bindings}
        for param in desc.ctor.parameters:
            if param.name not in encoded_names:
                desc.encode_bindings.append(
                    Binding(name=param.name, owner=cls, value_type=param.value_type, to_name=param.to_name, field=param.name)
                )
        for method_name, props in setter_members:
            method = getattr(cls, method_name)
            params = self._describe_params(cls, method, props, skip_first=True)
            desc.setters.append(SetterDescriptor(method_name, params))
        for method_name, handler in handler_members:
            method = getattr(cls, method_name)
            hints = _get_type_hints(method, cls)
            params = [p for p in inspect.signature(method).parameters.values()][1:]
            if len(params) != 1:
                raise TypeBindingError(f"{cls.__qualname__}.{method_name} must take exactly one argument")
            value_type = hints.get(params[0].name, Any)
            self._set_handler(desc, handler, Binding(name=method_name, owner=cls, value_type=value_type, setter=method_name))
        return desc

    @staticmethod
    def _scan_members(cls):
        ctor_member = None
        setters = {}
        handlers = {}
        # Base classes first so subclasses override
        for klass in reversed(cls.__mro__):
            for name, member in vars(klass).items():
                func = getattr(member, "__func__", member)
                if getattr(func, CREATOR_ATTR, None) is not None:
                    ctor_member = (name, member, getattr(func, CREATOR_ATTR))
                props = getattr(func, SETTER_ATTR, None)
                if props is not None:
                    setters[name] = props
                handler = getattr(func, HANDLER_ATTR, None)
                if handler is not None:
                    handlers[name] = handler
        return ctor_member, list(setters.items()), list(handlers.items())

    def _describe_ctor(self, cls, ctor_member):
        if ctor_member is None:
            if inspect.isabstract(cls):
                return ConstructorDescriptor()
            return ConstructorDescriptor(ctor=cls)
        name, member, props = ctor_member
        if name == "__init__":
            params = self._describe_params(cls, cls.__init__, props, skip_first=True)
            return ConstructorDescriptor(parameters=params, ctor=cls)
        if not isinstance(member, (staticmethod, classmethod)):
            raise TypeBindingError(f"creator {cls.__qualname__}.{name} must be __init__, a staticmethod or a classmethod")
        factory = getattr(cls, name)
        params = self._describe_params(cls, factory, props, skip_first=False)
        return ConstructorDescriptor(parameters=params, static_factory=factory)

    @staticmethod
    def _describe_params(cls, func, props, skip_first):
        hints = _get_type_hints(func, cls)
        params = list(inspect.signature(func).parameters.values())
        if skip_first:
            params = params[1:]
        unknown = set(props) - {p.name for p in params}
        if unknown:
            raise TypeBindingError(f"{func.__qualname__} has no parameters named {sorted(unknown)}")
        bindings = []
        for param in params:
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            _, binding = _binding_from_meta(
                param.name,
                cls,
                hints.get(param.name, Any),
                props.get(param.name),
                param_index=len(bindings),
                has_default=param.default is not inspect.Parameter.empty,
            )
            bindings.append(binding)
        return bindings

    @staticmethod
    def _iter_declared_fields(cls, type_hints):
        if dataclasses.is_dataclass(cls):
            for f in dataclasses.fields(cls):
                yield f.name, type_hints.get(f.name, Any), extract_field_meta(f)
            return
        for name, hint in type_hints.items():
            if name.startswith("_") or typing.get_origin(hint) is typing.ClassVar:
                continue
            yield name, hint, None

    @staticmethod
    def _set_handler(desc, handler, binding):
        if handler == MISSING_PROPERTIES:
            if desc.on_missing_properties is not None:
                raise TypeBindingError(f"{desc.cls.__qualname__} has more than one missing properties handler")
            desc.on_missing_properties = binding
        elif handler == EXTRA_PROPERTIES:
            if desc.on_extra_properties is not None:
                raise TypeBindingError(f"{desc.cls.__qualname__} has more than one extra properties handler")
            desc.on_extra_properties = binding
