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

import logging
import threading
import typing
from typing import Union

from pyjsoniter._registry import Registry
from pyjsoniter.decoder import build_decoder
from pyjsoniter.descriptor import ClassDescriptor, DescriptorProvider
from pyjsoniter.encoder_resolver import EncoderResolver, EncodingMode
from pyjsoniter.extension import Extension
from pyjsoniter.stream import JsonIterator, JsonStream
from pyjsoniter.type_util import decoder_cache_key, encoder_cache_key

logger = logging.getLogger(__name__)


def _memoized_key(keys, make_key, type_):
    try:
        key = keys.get(type_)
    except TypeError:
        # unhashable metadata inside Annotated
        return make_key(type_)
    if key is None:
        key = keys[type_] = make_key(type_)
    return key


class Jsoniter:
    """
    Binds JSON objects to Python classes in both directions.

    Decoders and encoders are built on first use of a type and cached for the
    lifetime of the instance. One instance may be shared by many threads.

    Examples:
        >>> import pyjsoniter
        >>> from dataclasses import dataclass
        >>>
        >>> @dataclass
        >>> class Person:
        ...     name: str = pyjsoniter.field(required=True)
        ...     age: int = 0
        >>>
        >>> jsoniter = pyjsoniter.Jsoniter()
        >>> person = jsoniter.deserialize('{"name": "Alice", "age": 30}', Person)
        >>> jsoniter.serialize(person)
        '{"name":"Alice","age":30}'

    See Also:
        EncodingMode: how encoders are built
    """

    __slots__ = (
        "registry",
        "descriptor_provider",
        "encoder_resolver",
        "_decoders",
        "_lock",
        "_decoder_keys",
        "_encoder_keys",
        "_property_encoders",
    )

    def __init__(
        self,
        mode: Union[EncodingMode, str] = None,
        descriptor_provider: DescriptorProvider = None,
    ):
        """
        Args:
            mode: Encoding mode of this instance. Defaults to the process-wide mode,
                taken from `PYJSONITER_ENCODING_MODE` or set by `pyjsoniter.set_mode`.
            descriptor_provider: Introspects classes into ClassDescriptors. Defaults to
                `DescriptorProvider`, which understands dataclasses, annotated classes
                and the `pyjsoniter.field` metadata.
        """
        self.registry = Registry()
        self.descriptor_provider = descriptor_provider or DescriptorProvider()
        self.encoder_resolver = EncoderResolver(self, mode=mode)
        self._decoders = {}
        self._lock = threading.RLock()
        self._decoder_keys = {}
        self._encoder_keys = {}
        self._property_encoders = {}

    @property
    def mode(self) -> EncodingMode:
        return self.encoder_resolver.mode

    def register_extension(self, extension: Extension):
        self.registry.register_extension(extension)

    def register_type_decoder(self, type_, decoder):
        """Decode every value declared as `type_` with `decoder`."""
        self.registry.register_type_decoder(type_, decoder)

    def register_type_encoder(self, type_, encoder):
        """Encode every value of `type_` with `encoder`."""
        self.registry.register_type_encoder(type_, encoder)

    def register_property_decoder(self, cls: type, name: str, decoder):
        """Decode property `name` of `cls` with `decoder`. Takes effect for classes not decoded yet."""
        self.registry.register_property_decoder(cls, name, decoder)

    def register_property_encoder(self, cls: type, name: str, encoder):
        """Encode property `name` of `cls` with `encoder`. Takes effect for classes not encoded yet."""
        self.registry.register_property_encoder(cls, name, encoder)

    def describe(self, cls: type) -> ClassDescriptor:
        desc = self.descriptor_provider.describe(cls)
        for extension in self.registry.extensions:
            extension.update_class_descriptor(desc)
        return desc

    def get_decoder(self, type_):
        cache_key = _memoized_key(self._decoder_keys, decoder_cache_key, type_)
        decoder = self.registry.lookup_decoder(cache_key) or self._decoders.get(cache_key)
        if decoder is not None:
            return decoder
        with self._lock:
            decoder = self._decoders.get(cache_key)
            if decoder is None:
                for extension in self.registry.extensions:
                    decoder = extension.create_decoder(cache_key, type_)
                    if decoder is not None:
                        break
                else:
                    decoder = build_decoder(self, type_)
                self._decoders[cache_key] = decoder
            return decoder

    def get_encoder(self, type_):
        cache_key = _memoized_key(self._encoder_keys, encoder_cache_key, type_)
        encoder = self.registry.lookup_encoder(cache_key)
        if encoder is not None:
            return encoder
        return self.encoder_resolver.get_encoder(cache_key, type_)

    def get_reflection_encoder(self, type_):
        cache_key = _memoized_key(self._encoder_keys, encoder_cache_key, type_)
        return self.encoder_resolver.get_reflection_encoder(cache_key, type_)

    def get_property_encoder(self, cls: type, name: str):
        """Explicit encoder of property `name` of `cls`, None when it has none."""
        encoders = self._property_encoders.get(cls)
        if encoders is None:
            with self._lock:
                encoders = self._property_encoders.get(cls)
                if encoders is None:
                    encoders = {
                        binding.name: binding.encoder or self.registry.lookup_property_encoder(binding)
                        for binding in self.describe(cls).encode_bindings
                    }
                    self._property_encoders[cls] = encoders
        return encoders.get(name)

    def get_generated_source(self, type_):
        """Source generated for the encoder of `type_`, None if it was not generated."""
        cache_key = type_ if isinstance(type_, str) else encoder_cache_key(type_)
        return self.encoder_resolver.get_generated_source(cache_key)

    def deserialize(self, text: Union[str, bytes], type_=typing.Any, existing=None):
        """
        Decode a JSON document into an instance of `type_`.

        Args:
            text: The JSON document, bytes are decoded as utf-8.
            type_: Target type hint, any JSON value is decoded into dicts, lists and
                scalars when omitted.
            existing: Instance of `type_` to merge the properties of the document into
                instead of creating a new one.
        """
        iter_ = JsonIterator(text, self)
        iter_.existing_object = existing
        return self.get_decoder(type_).decode(iter_)

    def serialize(self, obj, type_=None) -> str:
        """Encode `obj` as JSON, by the encoder of `type_` or of its run-time class."""
        stream = JsonStream(self)
        stream.write_val(obj, type_)
        return stream.getvalue()

    def loads(self, text: Union[str, bytes], type_=typing.Any, existing=None):
        """
        Decode a JSON document, alias for `deserialize` method.
        """
        return self.deserialize(text, type_, existing=existing)

    def dumps(self, obj, type_=None) -> str:
        """
        Encode an object as JSON, alias for `serialize` method.
        """
        return self.serialize(obj, type_)
