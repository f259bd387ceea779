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
import importlib
import re
import threading
import typing
import weakref
from abc import ABC, abstractmethod

ENCODER_CACHE_KEY_PREFIX = "pyjsoniter_codegen.encoder."
DECODER_CACHE_KEY_PREFIX = "pyjsoniter_codegen.decoder."

_INVALID_CHARS = re.compile(r"[^0-9a-zA-Z_]")

# mangled class name -> weak refs of the distinct classes carrying it, in first-seen order
_classes_by_name = {}
_classes_by_name_lock = threading.Lock()

_SEQUENCE_ORIGINS = {
    list,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Collection,
    collections.abc.Iterable,
}
_MAPPING_ORIGINS = {dict, collections.abc.Mapping, collections.abc.MutableMapping}


def is_subclass(from_type, to_type):
    try:
        return issubclass(from_type, to_type)
    except TypeError:
        return False


def get_qualified_classname(obj):
    import inspect

    t = obj if inspect.isclass(obj) else type(obj)
    return t.__module__ + "." + t.__qualname__


def qualified_class_name(cls):
    return cls.__module__ + "#" + cls.__qualname__


def load_class(classname: str):
    mod_name, cls_name = classname.rsplit("#", 1)
    try:
        mod = importlib.import_module(mod_name)
    except ImportError as ex:
        raise ImportError(f"Can't import module {mod_name}") from ex
    try:
        classes = cls_name.split(".")
        cls = getattr(mod, classes.pop(0))
        while classes:
            cls = getattr(cls, classes.pop(0))
        return cls
    except AttributeError as ex:
        raise ImportError(f"Can't import class {cls_name} from module {mod_name}") from ex


def is_optional_type(type_):
    if typing.get_origin(type_) is typing.Union:
        return type(None) in typing.get_args(type_)
    return False


def unwrap_optional(type_):
    if not is_optional_type(type_):
        return type_, False
    non_none_types = [arg for arg in typing.get_args(type_) if arg is not type(None)]
    if len(non_none_types) == 1:
        return non_none_types[0], True
    return typing.Union[tuple(non_none_types)], True


def unwrap_annotated(type_):
    """Returns the underlying hint and the metadata of ``Annotated[T, ...]``."""
    if typing.get_origin(type_) is typing.Annotated:
        args = typing.get_args(type_)
        return args[0], args[1:]
    return type_, ()


def split_type(type_):
    """Split a type hint into its raw class and its generic arguments."""
    origin = typing.get_origin(type_)
    if origin is None:
        return type_, ()
    return origin, typing.get_args(type_)


def is_dynamic_type(type_):
    """Whether values of ``type_`` must be dispatched on their run-time class."""
    if type_ is None or type_ is typing.Any or type_ is object:
        return True
    if isinstance(type_, (typing.TypeVar, typing.ForwardRef, str)):
        return True
    origin = typing.get_origin(type_)
    if origin is typing.Union:
        unwrapped, _ = unwrap_optional(type_)
        return typing.get_origin(unwrapped) is typing.Union or is_dynamic_type(unwrapped)
    return False


class TypeVisitor(ABC):
    @abstractmethod
    def visit_list(self, field_name, container_type, elem_type, types_path=None):
        pass

    @abstractmethod
    def visit_tuple(self, field_name, elem_types, types_path=None):
        pass

    @abstractmethod
    def visit_dict(self, field_name, container_type, key_type, value_type, types_path=None):
        pass

    @abstractmethod
    def visit_optional(self, field_name, type_, types_path=None):
        pass

    @abstractmethod
    def visit_customized(self, field_name, type_, types_path=None):
        pass

    @abstractmethod
    def visit_other(self, field_name, type_, types_path=None):
        pass


def infer_field(field_name, type_, visitor: TypeVisitor, types_path=None):
    types_path = list(types_path or [])
    types_path.append(type_)
    type_, _ = unwrap_annotated(type_)
    origin = typing.get_origin(type_) or type_
    args = typing.get_args(type_)
    if args:
        if origin in _SEQUENCE_ORIGINS:
            return visitor.visit_list(field_name, origin, args[0], types_path=types_path)
        elif origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return visitor.visit_list(field_name, tuple, args[0], types_path=types_path)
            return visitor.visit_tuple(field_name, args, types_path=types_path)
        elif origin in _MAPPING_ORIGINS:
            key_type, value_type = args
            return visitor.visit_dict(field_name, origin, key_type, value_type, types_path=types_path)
        elif origin is typing.Union:
            unwrapped, is_optional = unwrap_optional(type_)
            if is_optional and typing.get_origin(unwrapped) is not typing.Union:
                return visitor.visit_optional(field_name, unwrapped, types_path=types_path)
            return visitor.visit_other(field_name, type_, types_path=types_path)
        else:
            raise TypeError(f"Collection types should be {list, set, tuple, dict} instead of {type_}")
    if isinstance(origin, type) and origin.__module__ != "builtins":
        return visitor.visit_customized(field_name, type_, types_path=types_path)
    return visitor.visit_other(field_name, type_, types_path=types_path)


def _mangle(type_):
    type_, _ = unwrap_annotated(type_)
    if type_ is typing.Any:
        return "typing.Any"
    if type_ is Ellipsis:
        return "builtins.ellipsis"
    if type_ is None:
        type_ = type(None)
    if isinstance(type_, typing.TypeVar):
        return "typing.TypeVar_" + type_.__name__
    if isinstance(type_, typing.ForwardRef):
        return "typing.ForwardRef_" + type_.__forward_arg__
    origin = typing.get_origin(type_)
    if origin is not None:
        if origin is typing.Union:
            prefix = "typing.Union"
        else:
            prefix = _mangle(origin)
        args = "_".join(_mangle(arg).replace(".", "_") for arg in typing.get_args(type_))
        return f"{prefix}_of_{args}"
    module = getattr(type_, "__module__", None) or "builtins"
    qualname = getattr(type_, "__qualname__", None) or repr(type_)
    name = module + "." + qualname.replace("<locals>", "locals").replace(".", "_")
    if isinstance(type_, type):
        return _distinct_class_name(type_, name)
    return name


def _distinct_class_name(cls, name):
    """
    Suffix the name of a class with `_<n>` when an earlier, different class got the
    same name, e.g. a class made twice by one factory function or redefined on reload.
    """
    with _classes_by_name_lock:
        refs = _classes_by_name.setdefault(name, [])
        for i, ref in enumerate(refs):
            if ref() is cls:
                break
        else:
            i = len(refs)
            refs.append(weakref.ref(cls))
    return name if i == 0 else f"{name}_{i}"


def _cache_key(prefix, type_):
    segments = (prefix + _mangle(type_)).split(".")
    return ".".join(_INVALID_CHARS.sub("_", seg) for seg in segments)


def encoder_cache_key(type_):
    return _cache_key(ENCODER_CACHE_KEY_PREFIX, type_)


def decoder_cache_key(type_):
    return _cache_key(DECODER_CACHE_KEY_PREFIX, type_)


def property_cache_key(type_key, name):
    return f"{name}@{type_key}"
