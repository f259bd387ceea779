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

from pyjsoniter.error import (
    NameConflictError,
    NoConstructorError,
    PropertyPresentError,
    TooManyRequiredPropertiesError,
)
from pyjsoniter.type_util import get_qualified_classname

MAX_REQUIRED_PROPERTIES = 63


class RejectPresentDecoder:
    """Decoder installed on properties that must never be present."""

    __slots__ = ("binding",)

    def __init__(self, binding):
        self.binding = binding

    def decode(self, iter_):
        raise PropertyPresentError(self.binding.owner, self.binding.name)


class BindingTable:
    """
    Name to Binding index of one class, merged from constructor parameters,
    fields and setter parameters.

    Built once per class and never mutated afterward.
    """

    __slots__ = (
        "desc",
        "bindings",
        "required_bindings",
        "expected_tracker",
        "temp_count",
        "temp_cache_key",
        "ctor_args_cache_key",
    )

    def __init__(self, desc):
        self.desc = desc
        self.bindings = {}
        self.required_bindings = []
        self.expected_tracker = 0
        self.temp_count = 0
        self.temp_cache_key = None
        self.ctor_args_cache_key = None

    @classmethod
    def build(cls, desc, registry):
        table = cls(desc)
        if not desc.ctor.usable:
            raise NoConstructorError(f"no constructor for: {desc.cls}")
        temp_idx = 0
        for binding in desc.all_bindings():
            table._add_binding(binding, temp_idx, registry)
            temp_idx += 1
        table.expected_tracker = (1 << len(table.required_bindings)) - 1
        if desc.ctor.parameters or desc.setters:
            qualified_name = get_qualified_classname(desc.cls)
            table.temp_count = temp_idx
            table.temp_cache_key = "temp@" + qualified_name
            table.ctor_args_cache_key = "ctor@" + qualified_name
        return table

    def _add_binding(self, binding, idx, registry):
        if binding.rejected:
            binding.decoder = RejectPresentDecoder(binding)
        if binding.decoder is None:
            # the property decoder might be registered directly
            binding.decoder = registry.lookup_property_decoder(binding)
        binding.idx = idx
        for from_name in binding.from_names:
            if from_name in self.bindings:
                raise NameConflictError(self.desc.cls, from_name)
            self.bindings[from_name] = binding
        if binding.required:
            required_idx = len(self.required_bindings)
            if required_idx >= MAX_REQUIRED_PROPERTIES:
                raise TooManyRequiredPropertiesError(
                    f"too many required properties to track in {self.desc.cls}, at most {MAX_REQUIRED_PROPERTIES} are supported"
                )
            binding.mask = 1 << required_idx
            self.required_bindings.append(binding)

    def get(self, name):
        return self.bindings.get(name)

    def collect_missing(self, tracker):
        return [binding.name for binding in self.required_bindings if not tracker & binding.mask]
