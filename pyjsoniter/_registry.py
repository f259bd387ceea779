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

from pyjsoniter.extension import Extension
from pyjsoniter.type_util import decoder_cache_key, encoder_cache_key, property_cache_key

logger = logging.getLogger(__name__)


class Registry:
    """
    User supplied decoders, encoders and extensions, keyed by cache key.

    Writes replace the whole mapping under a lock so lookups never need one.
    """

    __slots__ = ("_decoders", "_encoders", "_extensions", "_lock")

    def __init__(self):
        self._decoders = {}
        self._encoders = {}
        self._extensions = ()
        self._lock = threading.Lock()

    def register_extension(self, extension: Extension):
        if not isinstance(extension, Extension):
            raise TypeError(f"{extension!r} is not a pyjsoniter.Extension")
        with self._lock:
            self._extensions = self._extensions + (extension,)

    @property
    def extensions(self):
        return self._extensions

    def register_type_decoder(self, type_, decoder):
        self._add_decoder(decoder_cache_key(type_), decoder)

    def register_type_encoder(self, type_, encoder):
        self._add_encoder(encoder_cache_key(type_), encoder)

    def register_property_decoder(self, cls, name, decoder):
        self._add_decoder(property_cache_key(decoder_cache_key(cls), name), decoder)

    def register_property_encoder(self, cls, name, encoder):
        self._add_encoder(property_cache_key(encoder_cache_key(cls), name), encoder)

    def _add_decoder(self, cache_key, decoder):
        if not callable(getattr(decoder, "decode", None)):
            raise TypeError(f"{decoder!r} has no decode(iter) method")
        with self._lock:
            if cache_key in self._decoders:
                logger.warning("Decoder for %s registered already, replacing it", cache_key)
            decoders = dict(self._decoders)
            decoders[cache_key] = decoder
            self._decoders = decoders

    def _add_encoder(self, cache_key, encoder):
        if not callable(getattr(encoder, "encode", None)):
            raise TypeError(f"{encoder!r} has no encode(obj, stream) method")
        with self._lock:
            if cache_key in self._encoders:
                logger.warning("Encoder for %s registered already, replacing it", cache_key)
            encoders = dict(self._encoders)
            encoders[cache_key] = encoder
            self._encoders = encoders

    def lookup_decoder(self, cache_key):
        return self._decoders.get(cache_key)

    def lookup_encoder(self, cache_key):
        return self._encoders.get(cache_key)

    def lookup_property_decoder(self, binding):
        decoder = self._decoders.get(property_cache_key(decoder_cache_key(binding.owner), binding.name))
        if decoder is None:
            decoder = self._decoders.get(decoder_cache_key(binding.value_type))
        return decoder

    def lookup_property_encoder(self, binding):
        encoder = self._encoders.get(property_cache_key(encoder_cache_key(binding.owner), binding.name))
        if encoder is None:
            encoder = self._encoders.get(encoder_cache_key(binding.value_type))
        return encoder
