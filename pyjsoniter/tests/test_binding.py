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

import abc
import dataclasses
from dataclasses import dataclass

import pytest

import pyjsoniter
from pyjsoniter._registry import Registry
from pyjsoniter.binding import MAX_REQUIRED_PROPERTIES, BindingTable, RejectPresentDecoder
from pyjsoniter.descriptor import DescriptorProvider
from pyjsoniter.error import (
    NameConflictError,
    NoConstructorError,
    PropertyPresentError,
    TooManyRequiredPropertiesError,
)
from pyjsoniter.type_util import get_qualified_classname


class Pair:
    c: int = 7

    @pyjsoniter.creator(a=pyjsoniter.prop(required=True), b=pyjsoniter.prop(required=True))
    def __init__(self, a: int, b: int):
        self.a = a
        self.b = b


class Shape:
    name: str = ""

    @pyjsoniter.setter
    def set_size(self, w: int, h: int):
        self.w = w
        self.h = h


@dataclass
class Point:
    x: int = 0
    y: int = 0


@dataclass
class Account:
    user_id: int = pyjsoniter.field("userId", aliases=["userId", "uid"], required=True, default=0)
    password: str = pyjsoniter.field(reject=True, default=None)
    note: str = pyjsoniter.field(ignore=True, default="")


@dataclass
class Conflict:
    a: int = pyjsoniter.field("x", default=0)
    b: int = pyjsoniter.field(aliases=["x"], default=0)


class AbstractShape(abc.ABC):
    @abc.abstractmethod
    def area(self):
        pass


def build_table(cls, registry=None):
    return BindingTable.build(DescriptorProvider().describe(cls), registry or Registry())


def required_class(n):
    fields = [(f"f{i}", int, pyjsoniter.field(required=True, default=0)) for i in range(n)]
    return dataclasses.make_dataclass(f"Required{n}", fields)


def test_slots_follow_constructor_fields_setters_order():
    table = build_table(Pair)
    assert [table.get(name).idx for name in ("a", "b", "c")] == [0, 1, 2]
    assert table.get("a").param_index == 0
    assert table.get("c").field == "c"
    assert table.temp_count == 3
    assert table.temp_cache_key == "temp@" + get_qualified_classname(Pair)
    assert table.ctor_args_cache_key == "ctor@" + get_qualified_classname(Pair)

    table = build_table(Shape)
    assert [table.get(name).idx for name in ("name", "w", "h")] == [0, 1, 2]
    assert table.temp_count == 3


def test_field_only_class_has_no_scratch_buffer():
    table = build_table(Point)
    assert table.temp_count == 0
    assert table.temp_cache_key is None
    assert table.expected_tracker == 0
    assert table.required_bindings == []


def test_required_bits():
    table = build_table(Pair)
    assert table.get("a").mask == 1
    assert table.get("b").mask == 2
    assert table.get("c").mask == 0
    assert table.expected_tracker == 0b11
    assert table.collect_missing(0) == ["a", "b"]
    assert table.collect_missing(0b01) == ["b"]
    assert table.collect_missing(0b11) == []


def test_aliases_and_ignored_fields():
    table = build_table(Account)
    binding = table.get("uid")
    assert binding is table.get("userId")
    assert binding.name == "user_id"
    assert binding.to_name == "userId"
    assert table.get("user_id") is None
    assert table.get("note") is None


def test_rejected_property_gets_failing_decoder():
    table = build_table(Account)
    decoder = table.get("password").decoder
    assert isinstance(decoder, RejectPresentDecoder)
    with pytest.raises(PropertyPresentError, match="password"):
        decoder.decode(None)


def test_name_conflict():
    with pytest.raises(NameConflictError) as excinfo:
        build_table(Conflict)
    assert str(excinfo.value) == "name conflict found in Conflict: x"
    assert excinfo.value.name == "x"


def test_max_required_properties():
    table = build_table(required_class(MAX_REQUIRED_PROPERTIES))
    assert table.expected_tracker == (1 << 63) - 1
    assert table.collect_missing(table.expected_tracker & ~(1 << 62)) == ["f62"]
    with pytest.raises(TooManyRequiredPropertiesError):
        build_table(required_class(MAX_REQUIRED_PROPERTIES + 1))


def test_no_constructor():
    with pytest.raises(NoConstructorError, match="no constructor for"):
        build_table(AbstractShape)


def test_registry_decoder_lookup():
    class Marker:
        def decode(self, iter_):
            return "marker"

    property_decoder, type_decoder = Marker(), Marker()
    registry = Registry()
    registry.register_property_decoder(Pair, "c", property_decoder)
    registry.register_type_decoder(int, type_decoder)
    table = build_table(Pair, registry)
    assert table.get("c").decoder is property_decoder
    assert table.get("a").decoder is type_decoder
    assert table.get("b").decoder is type_decoder
    assert build_table(Shape, Registry()).get("w").decoder is None
