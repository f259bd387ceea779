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

from pyjsoniter._jsoniter import Jsoniter
from pyjsoniter.any import JsonAny  # noqa: F401 # pylint: disable=unused-import
from pyjsoniter.encoder_resolver import (  # noqa: F401 # pylint: disable=unused-import
    EncodingMode,
    get_mode,
    set_mode,
)
from pyjsoniter.decoder import Decoder  # noqa: F401 # pylint: disable=unused-import
from pyjsoniter.encoder import Encoder, GeneratedEncoder  # noqa: F401 # pylint: disable=unused-import
from pyjsoniter.extension import Extension  # noqa: F401 # pylint: disable=unused-import
from pyjsoniter.field import (  # noqa: F401 # pylint: disable=unused-import
    field,
    prop,
    json_object,
    creator,
    setter,
    missing_properties,
    extra_properties,
)
from pyjsoniter.descriptor import (  # noqa: F401 # pylint: disable=unused-import
    Binding,
    ClassDescriptor,
    DescriptorProvider,
)
from pyjsoniter.stream import JsonIterator, JsonStream  # noqa: F401 # pylint: disable=unused-import
from pyjsoniter.error import (  # noqa: F401 # pylint: disable=unused-import
    JsonError,
    JsonDecodeError,
    JsonEncodeError,
    MissingPropertiesError,
    UnknownPropertyError,
    PropertyPresentError,
    TypeBindingError,
    NameConflictError,
    TooManyRequiredPropertiesError,
    NoConstructorError,
    CodegenError,
)

REFLECTION_MODE = EncodingMode.REFLECTION_MODE
DYNAMIC_MODE = EncodingMode.DYNAMIC_MODE
STATIC_MODE = EncodingMode.STATIC_MODE

__version__ = "0.1.0.dev"

__all__ = [
    # Core classes
    "Jsoniter",
    "JsonAny",
    "JsonIterator",
    "JsonStream",
    # Encoding modes
    "EncodingMode",
    "REFLECTION_MODE",
    "DYNAMIC_MODE",
    "STATIC_MODE",
    "get_mode",
    "set_mode",
    # Binding metadata
    "field",
    "prop",
    "json_object",
    "creator",
    "setter",
    "missing_properties",
    "extra_properties",
    "Binding",
    "ClassDescriptor",
    "DescriptorProvider",
    # Extension points
    "Decoder",
    "Encoder",
    "GeneratedEncoder",
    "Extension",
    # Errors
    "JsonError",
    "JsonDecodeError",
    "JsonEncodeError",
    "MissingPropertiesError",
    "UnknownPropertyError",
    "PropertyPresentError",
    "TypeBindingError",
    "NameConflictError",
    "TooManyRequiredPropertiesError",
    "NoConstructorError",
    "CodegenError",
]
