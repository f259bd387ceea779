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

"""
Python source generation for encoders.

`synthesize` turns a type into the body of an ``encode(obj, stream)`` function.
The body refers to classes as ``_t<N>``, to the encoders of nested declared types as
``_enc<N>`` and to per-property encoders as ``_penc<N>``. `compile_and_load` binds
those names in process, while `persist` writes a module whose ``Encoder`` binds them
for the Jsoniter instantiating it, so the same synthesis serves both the just-in-time
and the ahead-of-time path.
"""

import importlib
import logging
import os
import typing
from json.encoder import encode_basestring

from pyjsoniter.encoder import (
    ARRAY_SHAPE,
    COLLECTION_SHAPE,
    ENUM_SHAPE,
    MAP_SHAPE,
    GeneratedEncoder,
    declared_type,
    encoder_shape,
    map_key,
    property_read_error,
)
from pyjsoniter.error import JsonEncodeError
from pyjsoniter.type_util import encoder_cache_key, qualified_class_name, unwrap_annotated

try:
    import numpy as np
except ImportError:
    np = None

logger = logging.getLogger(__name__)

_INDENT = "    "

_DIRECT_WRITES = {
    bool: "write_bool",
    int: "write_int",
    float: "write_float",
    str: "write_str",
}


def _render_stmts(stmts, level, lines):
    for stmt in stmts:
        if isinstance(stmt, list):
            _render_stmts(stmt, level + 1, lines)
        else:
            lines.append(_INDENT * level + stmt)


def render_function(function_name, params, stmts):
    lines = [f"def {function_name}({', '.join(params)}):"]
    _render_stmts(stmts or ["pass"], 1, lines)
    return "\n".join(lines) + "\n"


def compile_function(function_name, params, stmts, context):
    """Compile `stmts` as the body of a function, returning its source and the function."""
    code = render_function(function_name, params, stmts)
    exec(compile(code, f"<pyjsoniter-codegen {function_name}>", "exec"), context)
    return code, context[function_name]


class CodegenResult:
    """Generated body of an encode function plus the names it needs bound."""

    def __init__(self, cache_key, type_):
        self.cache_key = cache_key
        self.type_ = type_
        self.stmts = []
        self.classes = []
        self.encoder_types = []
        self.property_encoders = []
        self._encoder_keys = {}

    def class_var(self, cls):
        for i, existing in enumerate(self.classes):
            if existing is cls:
                return f"_t{i}"
        self.classes.append(cls)
        return f"_t{len(self.classes) - 1}"

    def encoder_var(self, type_):
        key = encoder_cache_key(type_)
        idx = self._encoder_keys.get(key)
        if idx is None:
            idx = self._encoder_keys[key] = len(self.encoder_types)
            self.encoder_types.append(type_)
        return f"_enc{idx}"

    def property_encoder_var(self, binding, encoder):
        self.property_encoders.append((binding.owner, binding.name, encoder))
        return f"_penc{len(self.property_encoders) - 1}"

    def render(self):
        return render_function("encode", ["obj", "stream"], self.stmts)

    def __str__(self):
        return self.render()


def _value_stmts(result, value, value_type):
    hint, cls = declared_type(value_type)
    if hint is None:
        return [f"stream.write_val({value})"]
    method = _DIRECT_WRITES.get(cls)
    if method is not None and hint is cls:
        class_name, write = cls.__name__, f"stream.{method}({value})"
    else:
        class_name, write = result.class_var(cls), f"{result.encoder_var(hint)}.encode({value}, stream)"
    return [
        f"if {value} is None:",
        ["stream.write_null()"],
        f"elif type({value}) is {class_name}:",
        [write],
        "else:",
        [f"stream.write_val({value})"],
    ]


def _loop_stmts(result, iterable, elem_type):
    return [
        "first = True",
        f"for value in {iterable}:",
        [
            "if first:",
            ["first = False"],
            "else:",
            ["stream.write_more()"],
            *_value_stmts(result, "value", elem_type),
        ],
    ]


def _synthesize_enum(result, cls, type_args, jsoniter):
    result.stmts.append("stream.write_str(obj.name)")


def _synthesize_array(result, cls, type_args, jsoniter):
    stmts = result.stmts
    if cls is tuple and type_args and not (len(type_args) == 2 and type_args[1] is Ellipsis):
        n = len(type_args)
        stmts.append(f"if len(obj) != {n}:")
        stmts.append([f'raise JsonEncodeError(f"expect {n} elements but found {{len(obj)}}")'])
        stmts.append("stream.write_array_start()")
        for i, elem_type in enumerate(type_args):
            if i:
                stmts.append("stream.write_more()")
            stmts.append(f"value{i} = obj[{i}]")
            stmts.extend(_value_stmts(result, f"value{i}", elem_type))
        stmts.append("stream.write_array_end()")
        return
    stmts.append("stream.write_array_start()")
    if np is not None and cls is np.ndarray:
        stmts.extend(_loop_stmts(result, "obj.tolist()", typing.Any))
    else:
        stmts.extend(_loop_stmts(result, "obj", type_args[0] if type_args else typing.Any))
    stmts.append("stream.write_array_end()")


def _synthesize_collection(result, cls, type_args, jsoniter):
    result.stmts.append("stream.write_array_start()")
    result.stmts.extend(_loop_stmts(result, "obj", type_args[0] if type_args else typing.Any))
    result.stmts.append("stream.write_array_end()")


def _synthesize_map(result, cls, type_args, jsoniter):
    key_type, value_type = type_args if type_args else (typing.Any, typing.Any)
    key_expr = "key" if unwrap_annotated(key_type)[0] is str else "map_key(key)"
    result.stmts.extend(
        [
            "stream.write_object_start()",
            "first = True",
            "for key, value in obj.items():",
            [
                "if first:",
                ["first = False"],
                "else:",
                ["stream.write_more()"],
                f"stream.write_object_field({key_expr})",
                *_value_stmts(result, "value", value_type),
            ],
            "stream.write_object_end()",
        ]
    )


def _synthesize_object(result, cls, type_args, jsoniter):
    desc = jsoniter.describe(cls)
    stmts = result.stmts
    stmts.append(f'"""encode method for {cls.__module__}.{cls.__qualname__}"""')
    if not desc.encode_bindings:
        stmts.append('stream.write_raw("{}")')
        return
    separator = "{"
    for i, binding in enumerate(desc.encode_bindings):
        value = f"value{i}"
        stmts.append(f"stream.write_raw({separator + encode_basestring(binding.to_name) + ':'!r})")
        stmts.extend(
            [
                "try:",
                [f"{value} = obj.{binding.field}"],
                "except AttributeError as e:",
                [f"raise JsonEncodeError(property_read_error(obj, {binding.field!r}, e)) from e"],
            ]
        )
        encoder = binding.encoder or jsoniter.registry.lookup_property_encoder(binding)
        if encoder is not None:
            encoder_var = result.property_encoder_var(binding, encoder)
            stmts.extend(
                [
                    f"if {value} is None:",
                    ["stream.write_null()"],
                    "else:",
                    [f"{encoder_var}.encode({value}, stream)"],
                ]
            )
        else:
            stmts.extend(_value_stmts(result, value, binding.value_type))
        separator = ","
    stmts.append('stream.write_raw("}")')


_SYNTHESIZERS = {
    ENUM_SHAPE: _synthesize_enum,
    ARRAY_SHAPE: _synthesize_array,
    MAP_SHAPE: _synthesize_map,
    COLLECTION_SHAPE: _synthesize_collection,
}


def synthesize(cache_key, cls, type_args, jsoniter, type_=None) -> CodegenResult:
    """Generate the encode function body of `cls` specialized for `type_args`."""
    result = CodegenResult(cache_key, cls if type_ is None else type_)
    _SYNTHESIZERS.get(encoder_shape(cls), _synthesize_object)(result, cls, tuple(type_args), jsoniter)
    return result


def compile_and_load(cache_key, result, jsoniter):
    """Compile a synthesized body in process, resolving the nested encoders it refers to."""
    context = {"JsonEncodeError": JsonEncodeError, "map_key": map_key, "property_read_error": property_read_error}
    for i, cls in enumerate(result.classes):
        context[f"_t{i}"] = cls
    for i, (_, _, encoder) in enumerate(result.property_encoders):
        context[f"_penc{i}"] = encoder
    # A type reachable from itself gets the placeholder of its pending build here
    for i, type_ in enumerate(result.encoder_types):
        context[f"_enc{i}"] = jsoniter.get_encoder(type_)
    code, func = compile_function("encode", ["obj", "stream"], result.stmts, context)
    return GeneratedEncoder(jsoniter, result.type_, func, source=code)


class _ModuleRenderer:
    def __init__(self, result):
        self.result = result

    def type_expr(self, type_):
        type_, _ = unwrap_annotated(type_)
        if type_ is typing.Any or isinstance(type_, (typing.TypeVar, typing.ForwardRef)):
            return "typing.Any"
        if type_ is None or type_ is type(None):
            return "type(None)"
        if type_ is Ellipsis:
            return "..."
        origin = typing.get_origin(type_)
        if origin is None:
            return self.class_expr(type_)
        args = ", ".join(self.type_expr(arg) for arg in typing.get_args(type_))
        if origin is typing.Union:
            return f"typing.Union[{args}]"
        return f"{self.class_expr(origin)}[{args}]"

    def class_expr(self, cls):
        if not isinstance(cls, type):
            raise TypeError(f"Can't reference {cls!r} from a generated module")
        if cls.__module__ == "builtins":
            return "type(None)" if cls is type(None) else cls.__name__
        return self.result.class_var(cls)

    def _class_assignments(self):
        lines = []
        # class_expr may append while rendering, so iterate by index
        i = 0
        while i < len(self.result.classes):
            cls = self.result.classes[i]
            if "<locals>" in cls.__qualname__:
                raise TypeError(f"Can't persist an encoder referring to local class {cls.__qualname__}")
            if cls.__module__ == "builtins":
                lines.append(f"_t{i} = {self.class_expr(cls)}")
            else:
                lines.append(f"_t{i} = load_class({qualified_class_name(cls)!r})")
            i += 1
        return lines

    def render(self):
        result = self.result
        bind_stmts = []
        for i, type_ in enumerate(result.encoder_types):
            bind_stmts.append(f"_enc{i} = jsoniter.get_encoder({self.type_expr(type_)})")
        for i, (owner, name, _) in enumerate(result.property_encoders):
            bind_stmts.append(f"_penc{i} = jsoniter.get_property_encoder({self.class_expr(owner)}, {name!r})")
        bind_stmts.extend(["", "def encode(obj, stream):", result.stmts or ["pass"], "", "return encode"])
        bind_function = render_function("bind", ["jsoniter"], bind_stmts)
        lines = [
            "# Generated by pyjsoniter.static_codegen, do not edit.",
            "import typing",
            "",
            "from pyjsoniter.encoder import GeneratedEncoder, map_key, property_read_error",
            "from pyjsoniter.error import JsonEncodeError",
            "from pyjsoniter.type_util import load_class",
            "",
            f"CACHE_KEY = {result.cache_key!r}",
        ]
        lines.extend(self._class_assignments())
        lines.extend(
            [
                "",
                "",
                bind_function,
                "",
                "class Encoder(GeneratedEncoder):",
                "    __slots__ = ()",
                "",
                "    def __init__(self, jsoniter, type_):",
                "        super().__init__(jsoniter, type_, bind(jsoniter))",
                "",
            ]
        )
        return "\n".join(lines)


def render_module(result) -> str:
    return _ModuleRenderer(result).render()


def persist(cache_key, result, output_dir) -> str:
    """
    Write a synthesized encoder as an importable module named by `cache_key` under
    `output_dir`, creating one package directory per namespace segment.
    """
    source = render_module(result)
    segments = cache_key.split(".")
    directory = output_dir
    for segment in segments[:-1]:
        directory = os.path.join(directory, segment)
        os.makedirs(directory, exist_ok=True)
        init_file = os.path.join(directory, "__init__.py")
        if not os.path.exists(init_file):
            with open(init_file, "w", encoding="utf-8"):
                pass
    path = os.path.join(directory, segments[-1] + ".py")
    with open(path, "w", encoding="utf-8") as f:
        f.write(source)
    importlib.invalidate_caches()
    logger.debug("Wrote encoder module %s to %s", cache_key, path)
    return path


def load_generated(cache_key, jsoniter, type_):
    """Import a persisted encoder module, None when no such module is importable."""
    try:
        module = importlib.import_module(cache_key)
    except ModuleNotFoundError as e:
        if e.name is None or not cache_key.startswith(e.name):
            raise
        return None
    return module.Encoder(jsoniter, type_)
