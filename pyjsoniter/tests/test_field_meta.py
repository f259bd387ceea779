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
Tests for pyjsoniter.field() metadata and class introspection.
"""

import pytest
from dataclasses import dataclass, fields
from typing import Annotated, ClassVar, List, Optional

import pyjsoniter
from pyjsoniter import Jsoniter
from pyjsoniter.descriptor import DescriptorProvider
from pyjsoniter.error import TypeBindingError
from pyjsoniter.field import (
    EXTRA_PROPERTIES,
    MISSING_PROPERTIES,
    JsonPropertyMeta,
    extract_field_meta,
    get_object_meta,
)


class TestFieldFunction:
    """Tests for the pyjsoniter.field() function."""

    def test_field_metadata(self):
        @dataclass
        class TestClass:
            user_id: int = pyjsoniter.field("userId", aliases=["userId", "uid"], required=True, default=0)
            plain: str = ""

        meta = extract_field_meta(fields(TestClass)[0])
        assert meta.name == "userId"
        assert meta.aliases == ("userId", "uid")
        assert meta.required is True
        assert extract_field_meta(fields(TestClass)[1]) is None

    def test_field_with_default_value(self):
        @dataclass
        class TestClass:
            name: str = pyjsoniter.field(default="default_name")
            items: List[int] = pyjsoniter.field(default_factory=list)

        obj = TestClass()
        assert obj.name == "default_name"
        assert obj.items == []

    def test_field_preserves_user_metadata(self):
        @dataclass
        class TestClass:
            name: str = pyjsoniter.field(default="", metadata={"doc": "the name"})

        f = fields(TestClass)[0]
        assert f.metadata["doc"] == "the name"
        assert extract_field_meta(f) is not None

    def test_handler_fields(self):
        @dataclass
        class TestClass:
            missing: list = pyjsoniter.field(missing_properties=True, default=None)
            extras: dict = pyjsoniter.field(extra_properties=True, default=None)

        assert extract_field_meta(fields(TestClass)[0]).handler == MISSING_PROPERTIES
        assert extract_field_meta(fields(TestClass)[1]).handler == EXTRA_PROPERTIES

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            pyjsoniter.field(required=True, reject=True)
        with pytest.raises(ValueError):
            pyjsoniter.field(missing_properties=True, extra_properties=True)
        with pytest.raises(ValueError):
            pyjsoniter.prop(aliases=[])
        with pytest.raises(TypeError):
            pyjsoniter.prop(aliases="uid")
        with pytest.raises(TypeError):
            pyjsoniter.prop(1)

    def test_meta_is_frozen(self):
        meta = pyjsoniter.prop("a")
        assert isinstance(meta, JsonPropertyMeta)
        with pytest.raises(AttributeError):
            meta.name = "b"


class TestDecorators:
    """Tests for the class and method decorators."""

    def test_json_object(self):
        @pyjsoniter.json_object(as_extra_for_unknown_properties=True)
        class Strict:
            pass

        class Lenient:
            pass

        assert get_object_meta(Strict).as_extra_for_unknown_properties is True
        assert get_object_meta(Lenient).as_extra_for_unknown_properties is False

    def test_creator_requires_prop(self):
        with pytest.raises(TypeError):

            class TestClass:
                @pyjsoniter.creator(a=True)
                def __init__(self, a):
                    self.a = a

    def test_creator_must_be_constructor_or_factory(self):
        class TestClass:
            @pyjsoniter.creator
            def build(self, a: int):
                pass

        with pytest.raises(TypeBindingError):
            DescriptorProvider().describe(TestClass)

    def test_classmethod_creator(self):
        class TestClass:
            def __init__(self, a):
                self.a = a

            @classmethod
            @pyjsoniter.creator(a=pyjsoniter.prop(required=True))
            def create(cls, a: int):
                return cls(a * 2)

        desc = DescriptorProvider().describe(TestClass)
        assert [p.name for p in desc.ctor.parameters] == ["a"]
        assert desc.ctor.static_factory is not None
        assert Jsoniter().deserialize('{"a": 2}', TestClass).a == 4

    def test_unknown_parameter(self):
        class TestClass:
            @pyjsoniter.setter(z=pyjsoniter.prop(required=True))
            def set_pos(self, x: int, y: int):
                pass

        with pytest.raises(TypeBindingError, match="no parameters named"):
            DescriptorProvider().describe(TestClass)

    def test_handler_arity(self):
        class TestClass:
            @pyjsoniter.extra_properties
            def on_extra(self, extras, more):
                pass

        with pytest.raises(TypeBindingError, match="exactly one argument"):
            DescriptorProvider().describe(TestClass)

    def test_single_handler_of_each_kind(self):
        @dataclass
        class TestClass:
            missing: list = pyjsoniter.field(missing_properties=True, default=None)

            @pyjsoniter.missing_properties
            def on_missing(self, names):
                pass

        with pytest.raises(TypeBindingError, match="more than one missing properties handler"):
            DescriptorProvider().describe(TestClass)


class TestDescriptorProvider:
    """Tests for class introspection into descriptors."""

    def test_annotated_class(self):
        class TestClass:
            count: Annotated[int, pyjsoniter.prop("n", required=True)] = 0
            label: Optional[str] = None
            _private: int = 0
            shared: ClassVar[int] = 1

        desc = DescriptorProvider().describe(TestClass)
        assert [b.name for b in desc.fields] == ["count", "label"]
        count = desc.fields[0]
        assert count.to_name == "n"
        assert count.from_names == ["n"]
        assert count.required
        assert count.value_type is int
        assert desc.fields[1].value_class is str
        assert desc.ctor.ctor is TestClass
        assert Jsoniter().deserialize('{"n": 3}', TestClass).count == 3

    def test_setter_and_handler_methods(self):
        class TestClass:
            @pyjsoniter.setter
            def set_range(self, low: int, high: int = 10):
                pass

            @pyjsoniter.missing_properties
            def on_missing(self, names: List[str]):
                pass

        desc = DescriptorProvider().describe(TestClass)
        assert len(desc.setters) == 1
        setter = desc.setters[0]
        assert setter.method_name == "set_range"
        assert [(p.name, p.param_index, p.has_default) for p in setter.parameters] == [
            ("low", 0, False),
            ("high", 1, True),
        ]
        assert desc.on_missing_properties.setter == "on_missing"
        assert desc.on_missing_properties.value_type == List[str]
        assert desc.fields == []

    def test_subclass_inherits_bindings(self):
        @dataclass
        class Base:
            a: int = 0

            @pyjsoniter.extra_properties
            def on_extra(self, extras: dict):
                self.extras = extras

        @pyjsoniter.json_object(as_extra_for_unknown_properties=True)
        @dataclass
        class Child(Base):
            b: int = 0

        desc = DescriptorProvider().describe(Child)
        assert [b.name for b in desc.fields] == ["a", "b"]
        assert desc.on_extra_properties.setter == "on_extra"
        child = Jsoniter().deserialize('{"a": 1, "b": 2, "c": 3}', Child)
        assert (child.a, child.b, child.extras) == (1, 2, {"c": 3})

    def test_frozen_dataclass(self):
        @dataclass(frozen=True)
        class Frozen:
            a: int = 0

        @dataclass
        class Mutable:
            a: int = 0

        assert DescriptorProvider().describe(Frozen).frozen
        assert not DescriptorProvider().describe(Mutable).frozen

    def test_not_a_class(self):
        with pytest.raises(TypeBindingError):
            DescriptorProvider().describe(List[int])

    def test_unresolvable_hint(self):
        class TestClass:
            value: "NoSuchType" = None  # noqa: F821

        with pytest.raises(TypeBindingError, match="can't resolve type hints"):
            DescriptorProvider().describe(TestClass)
