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

import dataclasses
import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

import pytest

import pyjsoniter
from pyjsoniter import JsonAny, Jsoniter
from pyjsoniter.encoder import map_key
from pyjsoniter.error import JsonEncodeError
from pyjsoniter.tests.core import require_numpy

try:
    import numpy as np
except ImportError:
    np = None

MODES = ["reflection", "dynamic"]


class Color(enum.Enum):
    RED = 1
    GREEN = 2


@dataclass
class Inner:
    a: int = 0
    b: int = 0


@dataclass
class SubInner(Inner):
    c: str = ""


@dataclass
class Outer:
    inner: Optional[Inner] = None
    name: str = ""


@dataclass
class Person:
    name: str
    age: int
    tags: List[str] = dataclasses.field(default_factory=list)
    scores: Dict[str, float] = dataclasses.field(default_factory=dict)
    color: Color = Color.RED


class Pair:
    c: int = 7

    @pyjsoniter.creator
    def __init__(self, a: int, b: int):
        self.a = a
        self.b = b


class Hidden:
    @pyjsoniter.creator
    def __init__(self, a: int):
        self._a = a


@pyjsoniter.json_object(as_extra_for_unknown_properties=True)
@dataclass
class Renamed:
    user_id: int = pyjsoniter.field("userId", aliases=["userId", "uid"], default=0)
    secret: str = pyjsoniter.field(ignore=True, default="")
    extras: dict = pyjsoniter.field(extra_properties=True, default=None)


@dataclass
class Counter:
    count: int = 0


class UpperEncoder:
    def encode(self, obj, stream):
        stream.write_str(obj.upper())


@pytest.mark.parametrize("mode", MODES)
def test_encode_objects(mode):
    jsoniter = Jsoniter(mode=mode)
    assert jsoniter.serialize(Inner(1, 2)) == '{"a":1,"b":2}'
    assert jsoniter.serialize(Outer(Inner(1, 2), "x")) == '{"inner":{"a":1,"b":2},"name":"x"}'
    assert jsoniter.serialize(Outer()) == '{"inner":null,"name":""}'
    person = Person("Bob", 30, ["a", "é"], {"math": 1.5}, Color.GREEN)
    assert jsoniter.serialize(person) == (
        '{"name":"Bob","age":30,"tags":["a","é"],"scores":{"math":1.5},"color":"GREEN"}'
    )


@pytest.mark.parametrize("mode", MODES)
def test_encode_constructor_bound_object(mode):
    # Declared fields first, then constructor parameters
    assert Jsoniter(mode=mode).serialize(Pair(1, 2)) == '{"c":7,"a":1,"b":2}'


@pytest.mark.parametrize("mode", MODES)
def test_encode_unreadable_property(mode):
    with pytest.raises(JsonEncodeError, match="Hidden.*'a'") as excinfo:
        Jsoniter(mode=mode).serialize(Hidden(1))
    assert isinstance(excinfo.value.__cause__, AttributeError)


@pytest.mark.parametrize("mode", MODES)
def test_encode_renamed_and_ignored_properties(mode):
    obj = Renamed(user_id=3, secret="s", extras={"x": 1})
    assert Jsoniter(mode=mode).serialize(obj) == '{"userId":3}'


@pytest.mark.parametrize("mode", MODES)
def test_encode_value_of_other_class_than_declared(mode):
    jsoniter = Jsoniter(mode=mode)
    assert jsoniter.serialize(Outer(SubInner(1, 2, "z"))) == '{"inner":{"a":1,"b":2,"c":"z"},"name":""}'
    assert jsoniter.serialize(Counter(True)) == '{"count":true}'
    assert jsoniter.serialize(Counter(1.5)) == '{"count":1.5}'


@pytest.mark.parametrize("mode", MODES)
def test_encode_containers(mode):
    jsoniter = Jsoniter(mode=mode)
    assert jsoniter.serialize([1, "a", None, {"k": 1.5}]) == '[1,"a",null,{"k":1.5}]'
    assert jsoniter.serialize([Inner(1, 2)], List[Inner]) == '[{"a":1,"b":2}]'
    assert jsoniter.serialize({2}, Set[int]) == "[2]"
    assert jsoniter.serialize((1, "a"), Tuple[int, str]) == '[1,"a"]'
    assert jsoniter.serialize((1, 2, 3), Tuple[int, ...]) == "[1,2,3]"
    assert jsoniter.serialize((1, "a")) == '[1,"a"]'
    assert jsoniter.serialize({Color.RED: [1]}, Dict[Color, List[int]]) == '{"RED":[1]}'
    assert jsoniter.serialize([]) == "[]"
    assert jsoniter.serialize({}) == "{}"
    with pytest.raises(JsonEncodeError):
        jsoniter.serialize((1, "a", 3), Tuple[int, str])


@pytest.mark.parametrize("mode", MODES)
def test_encode_map_keys(mode):
    jsoniter = Jsoniter(mode=mode)
    value = {2: "a", None: "b", True: "c", 1.5: "d", Color.GREEN: "e"}
    assert jsoniter.serialize(value) == '{"2":"a","null":"b","true":"c","1.5":"d","GREEN":"e"}'
    with pytest.raises(JsonEncodeError):
        jsoniter.serialize({(1, 2): 1})


def test_map_key():
    assert map_key("k") == "k"
    assert map_key(False) == "false"
    assert map_key(Decimal("1.0")) == "1.0"
    with pytest.raises(JsonEncodeError):
        map_key(object())


@pytest.mark.parametrize("mode", MODES)
def test_encode_scalars(mode):
    jsoniter = Jsoniter(mode=mode)
    assert jsoniter.serialize(None) == "null"
    assert jsoniter.serialize(Color.RED) == '"RED"'
    assert jsoniter.serialize(Decimal("1.10")) == "1.10"
    assert jsoniter.serialize('a"b') == '"a\\"b"'
    assert jsoniter.serialize(JsonAny({"a": [1]})) == '{"a":[1]}'
    assert jsoniter.serialize(10**20) == "100000000000000000000"
    with pytest.raises(JsonEncodeError):
        jsoniter.serialize(Decimal("NaN"))
    with pytest.raises(JsonEncodeError):
        jsoniter.serialize([float("nan")])
    with pytest.raises(JsonEncodeError):
        jsoniter.serialize(object())


@pytest.mark.parametrize("mode", MODES)
def test_round_trip(mode):
    jsoniter = Jsoniter(mode=mode)
    person = Person("Ann", 41, ["x"], {"a": 0.25, "b": -2.0}, Color.GREEN)
    assert jsoniter.deserialize(jsoniter.serialize(person), Person) == person
    assert jsoniter.loads(jsoniter.dumps(person), Person) == person
    pair = jsoniter.deserialize(jsoniter.serialize(Pair(3, 4)), Pair)
    assert (pair.a, pair.b, pair.c) == (3, 4, 7)
    renamed = jsoniter.deserialize(jsoniter.serialize(Renamed(user_id=9)), Renamed)
    assert renamed.user_id == 9


@pytest.mark.parametrize("mode", MODES)
def test_property_encoders(mode):
    @dataclass
    class Tagged:
        tag: str = pyjsoniter.field(encoder=UpperEncoder(), default="")
        name: str = ""
        label: Optional[str] = None

    jsoniter = Jsoniter(mode=mode)
    jsoniter.register_property_encoder(Tagged, "name", UpperEncoder())
    assert jsoniter.serialize(Tagged("a", "b", "c")) == '{"tag":"A","name":"B","label":"c"}'
    assert jsoniter.serialize(Tagged("a", "b")) == '{"tag":"A","name":"B","label":null}'
    assert isinstance(jsoniter.get_property_encoder(Tagged, "tag"), UpperEncoder)
    assert jsoniter.get_property_encoder(Tagged, "label") is None


@pytest.mark.parametrize("mode", MODES)
def test_type_encoder(mode):
    class InnerAsList:
        def encode(self, obj, stream):
            stream.write_val([obj.a, obj.b])

    jsoniter = Jsoniter(mode=mode)
    jsoniter.register_type_encoder(Inner, InnerAsList())
    assert jsoniter.serialize(Inner(1, 2)) == "[1,2]"
    assert jsoniter.serialize(Outer(Inner(1, 2), "x")) == '{"inner":[1,2],"name":"x"}'


@require_numpy
@pytest.mark.parametrize("mode", MODES)
def test_encode_numpy(mode):
    jsoniter = Jsoniter(mode=mode)
    assert jsoniter.serialize(np.array([[1, 2], [3, 4]])) == "[[1,2],[3,4]]"
    assert jsoniter.serialize(np.float32(1.5)) == "1.5"
    assert jsoniter.serialize(np.int64(3)) == "3"
    assert jsoniter.serialize({"v": np.array([0.5])}) == '{"v":[0.5]}'
