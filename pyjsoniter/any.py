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


class JsonAny:
    """Wrapper around a value decoded without a target type."""

    __slots__ = ("_value",)

    def __init__(self, value):
        self._value = value

    def get(self, *path, default=None):
        """Walk nested dict keys / list indexes, returning `default` when the path breaks."""
        value = self._value
        for key in path:
            try:
                value = value[key]
            except (KeyError, IndexError, TypeError):
                return default
        return value

    def to_python(self):
        return self._value

    def keys(self):
        if isinstance(self._value, dict):
            return self._value.keys()
        return ()

    def __len__(self):
        if isinstance(self._value, (dict, list, str)):
            return len(self._value)
        return 0

    def __getitem__(self, key):
        return self._value[key]

    def __contains__(self, key):
        return isinstance(self._value, (dict, list)) and key in self._value

    def __eq__(self, other):
        if isinstance(other, JsonAny):
            return self._value == other._value
        return self._value == other

    def __hash__(self):
        return hash(repr(self._value))

    def __repr__(self):
        return f"JsonAny({self._value!r})"
