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


class JsonError(Exception):
    pass


class JsonDecodeError(JsonError):
    def __init__(self, message, pos=None):
        if pos is not None:
            message = f"{message}, at position {pos}"
        super().__init__(message)
        self.pos = pos


class JsonEncodeError(JsonError):
    pass


class MissingPropertiesError(JsonDecodeError):
    def __init__(self, cls, names):
        super().__init__(f"missing required properties for {_type_name(cls)}: {names}")
        self.cls = cls
        self.names = list(names)


class UnknownPropertyError(JsonDecodeError):
    def __init__(self, cls, name):
        super().__init__(f"unknown property for {_type_name(cls)}: {name}")
        self.cls = cls
        self.name = name


class PropertyPresentError(JsonDecodeError):
    def __init__(self, cls, name):
        super().__init__(f"found should not present property for {_type_name(cls)}: {name}")
        self.cls = cls
        self.name = name


class TypeBindingError(JsonError):
    pass


class NameConflictError(TypeBindingError):
    def __init__(self, cls, name):
        super().__init__(f"name conflict found in {_type_name(cls)}: {name}")
        self.cls = cls
        self.name = name


class TooManyRequiredPropertiesError(TypeBindingError):
    pass


class NoConstructorError(TypeBindingError):
    pass


class CodegenError(JsonError):
    def __init__(self, type_, type_args, source=None, cause=None):
        message = f"failed to generate encoder for: {type_} with {list(type_args)}, exception: {cause!r}"
        if source is not None:
            message = message + "\n" + str(source)
        super().__init__(message)
        self.type_ = type_
        self.type_args = tuple(type_args)
        self.source = source


def _type_name(cls):
    return getattr(cls, "__qualname__", None) or repr(cls)
