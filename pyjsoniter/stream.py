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

import json
import json.decoder
from decimal import Decimal
from json.encoder import encode_basestring

from pyjsoniter.error import JsonDecodeError, JsonEncodeError

_WHITESPACE = " \t\n\r"
_raw_decoder = json.JSONDecoder()
_decimal_decoder = json.JSONDecoder(parse_float=Decimal, parse_int=Decimal)


class JsonIterator:
    """
    Token reader over a JSON document.

    One iterator serves one decode call chain. Besides the cursor it carries the
    per-call context: `temp_objects` caches scratch buffers by a per-type key and
    `existing_object` holds the merge target offered to the next object decoder.
    """

    __slots__ = ("jsoniter", "text", "head", "temp_objects", "existing_object")

    def __init__(self, text: str = "", jsoniter=None):
        if isinstance(text, (bytes, bytearray)):
            text = text.decode("utf-8")
        self.jsoniter = jsoniter
        self.text = text
        self.head = 0
        self.temp_objects = {}
        self.existing_object = None

    def reset(self, text: str):
        """Point the iterator at a new document, keeping the cached scratch buffers."""
        if isinstance(text, (bytes, bytearray)):
            text = text.decode("utf-8")
        self.text = text
        self.head = 0
        self.existing_object = None

    def reset_existing_object(self):
        existing = self.existing_object
        self.existing_object = None
        return existing

    def _skip_whitespace(self):
        text, head = self.text, self.head
        n = len(text)
        while head < n and text[head] in _WHITESPACE:
            head += 1
        self.head = head
        return head

    def next_token(self) -> str:
        head = self._skip_whitespace()
        if head >= len(self.text):
            raise JsonDecodeError("unexpected end of input", head)
        self.head = head + 1
        return self.text[head]

    def peek_token(self) -> str:
        head = self._skip_whitespace()
        if head >= len(self.text):
            raise JsonDecodeError("unexpected end of input", head)
        return self.text[head]

    def report_error(self, op, message):
        return JsonDecodeError(f"{op}: {message}, head: {self.head}, buf: {self.text[max(0, self.head - 10):self.head + 10]!r}")

    def read_null(self) -> bool:
        head = self._skip_whitespace()
        if self.text.startswith("null", head):
            self.head = head + 4
            return True
        return False

    def read_object_start(self) -> bool:
        """Consume `{`; returns False when the object has no properties."""
        c = self.next_token()
        if c != "{":
            raise self.report_error("read_object_start", f"expect {{ but found {c}")
        if self.peek_token() == "}":
            self.head += 1
            return False
        return True

    def read_object_field(self) -> str:
        if self.next_token() != '"':
            raise self.report_error("read_object_field", "expect field name")
        name = self._read_string_body()
        if self.next_token() != ":":
            raise self.report_error("read_object_field", "expect :")
        return name

    def read_more(self, closing: str) -> bool:
        """Consume the separator after a value; returns False at the closing bracket."""
        c = self.next_token()
        if c == ",":
            return True
        if c == closing:
            return False
        raise self.report_error("read_more", f"expect , or {closing} but found {c}")

    def read_array_start(self) -> bool:
        """Consume `[`; returns False when the array is empty."""
        c = self.next_token()
        if c != "[":
            raise self.report_error("read_array_start", f"expect [ but found {c}")
        if self.peek_token() == "]":
            self.head += 1
            return False
        return True

    def _read_string_body(self):
        try:
            value, self.head = json.decoder.scanstring(self.text, self.head)
        except json.JSONDecodeError as e:
            raise JsonDecodeError(e.msg, e.pos) from e
        return value

    def read_str(self) -> str:
        if self.next_token() != '"':
            self.head -= 1
            raise self.report_error("read_str", "expect string")
        return self._read_string_body()

    def read_bool(self) -> bool:
        head = self._skip_whitespace()
        if self.text.startswith("true", head):
            self.head = head + 4
            return True
        if self.text.startswith("false", head):
            self.head = head + 5
            return False
        raise self.report_error("read_bool", "expect true or false")

    def read_number(self):
        value = self.read_any()
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise self.report_error("read_number", f"expect number but found {value!r}")
        return value

    def read_int(self) -> int:
        value = self.read_number()
        if isinstance(value, float):
            if not value.is_integer():
                raise self.report_error("read_int", f"expect int but found {value!r}")
            value = int(value)
        return value

    def read_float(self) -> float:
        return float(self.read_number())

    def read_decimal(self) -> Decimal:
        head = self._skip_whitespace()
        try:
            value, self.head = _decimal_decoder.raw_decode(self.text, head)
        except json.JSONDecodeError as e:
            raise JsonDecodeError(e.msg, e.pos) from e
        if not isinstance(value, Decimal):
            raise self.report_error("read_decimal", f"expect number but found {value!r}")
        return value

    def read_any(self):
        """Read an arbitrary value into dicts, lists and scalars."""
        head = self._skip_whitespace()
        try:
            value, self.head = _raw_decoder.raw_decode(self.text, head)
        except json.JSONDecodeError as e:
            raise JsonDecodeError(e.msg, e.pos) from e
        return value

    def skip(self):
        self.read_any()

    def read(self, type_):
        """Default type-driven decoding."""
        return self.jsoniter.get_decoder(type_).decode(self)


class JsonStream:
    """Token writer producing a JSON document."""

    __slots__ = ("jsoniter", "_parts")

    def __init__(self, jsoniter=None):
        self.jsoniter = jsoniter
        self._parts = []

    def write_raw(self, raw: str):
        self._parts.append(raw)

    def write_null(self):
        self._parts.append("null")

    def write_bool(self, value):
        self._parts.append("true" if value else "false")

    def write_int(self, value):
        self._parts.append(int.__repr__(int(value)))

    def write_float(self, value):
        value = float(value)
        if value != value or value in (float("inf"), float("-inf")):
            raise JsonEncodeError(f"{value} is not a valid JSON number")
        self._parts.append(float.__repr__(value))

    def write_str(self, value):
        self._parts.append(encode_basestring(value))

    def write_object_start(self):
        self._parts.append("{")

    def write_object_field(self, name: str):
        self._parts.append(encode_basestring(name))
        self._parts.append(":")

    def write_object_end(self):
        self._parts.append("}")

    def write_array_start(self):
        self._parts.append("[")

    def write_array_end(self):
        self._parts.append("]")

    def write_more(self):
        self._parts.append(",")

    def write_val(self, obj, type_=None):
        """Write `obj` with the encoder of `type_`, or of its run-time class."""
        if obj is None:
            self._parts.append("null")
            return
        self.jsoniter.get_encoder(type(obj) if type_ is None else type_).encode(obj, self)

    def getvalue(self) -> str:
        return "".join(self._parts)
