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

import enum
import logging
import os
import threading

from pyjsoniter import codegen
from pyjsoniter.encoder import Encoder, build_reflection_encoder, get_native_encoder
from pyjsoniter.error import CodegenError, JsonEncodeError, TypeBindingError
from pyjsoniter.type_util import encoder_cache_key, split_type, unwrap_annotated

logger = logging.getLogger(__name__)


class EncodingMode(enum.Enum):
    # Encoders walk the class descriptor at run time
    REFLECTION_MODE = "reflection"
    # Generated source, imported when persisted ahead of time, else compiled in process
    DYNAMIC_MODE = "dynamic"
    # Generated source which must have been persisted ahead of time
    STATIC_MODE = "static"

    @classmethod
    def parse(cls, mode):
        if isinstance(mode, cls):
            return mode
        value = str(mode).strip()
        for member in cls:
            if value.upper() in (member.name, member.name[: -len("_MODE")]) or value.lower() == member.value:
                return member
        raise ValueError(f"Unknown encoding mode {mode!r}, expect one of {[m.name for m in cls]}")


def _mode_from_env():
    value = os.environ.get("PYJSONITER_ENCODING_MODE")
    if not value:
        return EncodingMode.REFLECTION_MODE
    try:
        return EncodingMode.parse(value)
    except ValueError:
        logger.warning("Ignoring PYJSONITER_ENCODING_MODE=%s, using reflection mode", value)
        return EncodingMode.REFLECTION_MODE


_mode = _mode_from_env()

_DEBUG_OUTPUT = os.environ.get("PYJSONITER_DEBUG_OUTPUT", "False").lower() in (
    "true",
    "1",
)


def set_mode(mode):
    """Switch the process-wide encoding mode. Encoders built already are kept."""
    global _mode
    _mode = EncodingMode.parse(mode)
    logger.info("Encoding mode set to %s", _mode.name)


def get_mode() -> EncodingMode:
    return _mode


class PlaceholderEncoder(Encoder):
    """
    Stands for the encoder of a type while that encoder is being built.

    Encoders built meanwhile for types reachable from it capture the placeholder,
    which looks the real encoder up by cache key each time it is called.
    """

    __slots__ = ("resolver", "cache_key")

    def __init__(self, resolver, cache_key, type_):
        super().__init__(resolver.jsoniter, type_)
        self.resolver = resolver
        self.cache_key = cache_key

    def encode(self, obj, stream):
        encoder = self.resolver.lookup(self.cache_key)
        if encoder is None:
            encoder = self.resolver.get_encoder(self.cache_key, self.type_)
            if encoder is self:
                raise JsonEncodeError(f"encoder of {self.type_} is still being built")
        encoder.encode(obj, stream)

    def __repr__(self):
        return f"PlaceholderEncoder({self.cache_key})"


class EncoderResolver:
    """
    Builds and caches encoders by cache key.

    Published encoders are read without locking. Building runs under one reentrant
    lock, so a key is built at most once and a type reachable from itself resolves to
    the placeholder of its own pending build.
    """

    def __init__(self, jsoniter, mode=None):
        self.jsoniter = jsoniter
        self._mode = None if mode is None else EncodingMode.parse(mode)
        self._encoders = {}
        self._pending = {}
        self._failed = {}
        self._reflection_encoders = {}
        self._generated_sources = {}
        self._lock = threading.RLock()

    @property
    def mode(self) -> EncodingMode:
        return self._mode or _mode

    @property
    def generated_sources(self):
        return dict(self._generated_sources)

    def get_generated_source(self, cache_key):
        return self._generated_sources.get(cache_key)

    def lookup(self, cache_key):
        return self._encoders.get(cache_key)

    def get_encoder(self, cache_key, type_):
        encoder = self._encoders.get(cache_key)
        if encoder is not None:
            return encoder
        with self._lock:
            encoder = self._encoders.get(cache_key)
            if encoder is not None:
                return encoder
            encoder = self._pending.get(cache_key)
            if encoder is not None:
                return encoder
            failure = self._failed.get(cache_key)
            if failure is not None:
                raise failure
            return self._build(cache_key, type_)

    def get_reflection_encoder(self, cache_key, type_):
        """Encoder walking the class descriptor at run time, whatever the mode."""
        encoder = self._reflection_encoders.get(cache_key)
        if encoder is not None:
            return encoder
        with self._lock:
            encoder = self._reflection_encoders.get(cache_key)
            if encoder is None:
                encoder = get_native_encoder(self.jsoniter, type_) or build_reflection_encoder(self.jsoniter, type_)
                encoders = dict(self._reflection_encoders)
                encoders[cache_key] = encoder
                self._reflection_encoders = encoders
            return encoder

    def _from_extensions(self, cache_key, type_):
        for extension in self.jsoniter.registry.extensions:
            encoder = extension.create_encoder(cache_key, type_)
            if encoder is not None:
                return encoder
        return None

    def _build(self, cache_key, type_):
        encoder = self._from_extensions(cache_key, type_) or get_native_encoder(self.jsoniter, type_)
        if encoder is not None:
            self._encoders[cache_key] = encoder
            return encoder
        self._pending[cache_key] = PlaceholderEncoder(self, cache_key, type_)
        try:
            encoder = self._build_by_mode(cache_key, type_)
        except TypeBindingError as e:
            self._failed[cache_key] = e
            raise
        except CodegenError as e:
            # A nested type failed, report it as the failure of this one
            error = e if e.type_ is split_type(unwrap_annotated(type_)[0])[0] else self._codegen_error(type_, cause=e)
            self._failed[cache_key] = error
            raise error
        except Exception as e:
            error = self._codegen_error(type_, cause=e)
            self._failed[cache_key] = error
            raise error from e
        finally:
            del self._pending[cache_key]
        self._encoders[cache_key] = encoder
        return encoder

    @staticmethod
    def _codegen_error(type_, source=None, cause=None):
        cls, type_args = split_type(unwrap_annotated(type_)[0])
        return CodegenError(cls, type_args, source=source, cause=cause)

    def _build_by_mode(self, cache_key, type_):
        mode = self.mode
        if mode is EncodingMode.REFLECTION_MODE:
            logger.debug("Building reflection encoder for %s", type_)
            return build_reflection_encoder(self.jsoniter, type_)
        encoder = codegen.load_generated(cache_key, self.jsoniter, type_)
        if encoder is not None:
            logger.debug("Loaded generated encoder %s", cache_key)
            return encoder
        if mode is EncodingMode.STATIC_MODE:
            cause = ImportError(f"no generated encoder module {cache_key}")
            raise self._codegen_error(type_, cause=cause) from cause
        logger.info("No generated encoder module %s, compiling it in process", cache_key)
        result = self._synthesize(cache_key, type_)
        try:
            return codegen.compile_and_load(cache_key, result, self.jsoniter)
        except (TypeBindingError, CodegenError):
            raise
        except Exception as e:
            raise self._codegen_error(type_, source=result, cause=e) from e

    def _synthesize(self, cache_key, type_):
        logger.debug("Generating encoder for %s", type_)
        cls, type_args = split_type(unwrap_annotated(type_)[0])
        try:
            result = codegen.synthesize(cache_key, cls, type_args, self.jsoniter, type_=type_)
        except TypeBindingError:
            raise
        except Exception as e:
            raise self._codegen_error(type_, cause=e) from e
        source = str(result)
        self._generated_sources[cache_key] = source
        if _DEBUG_OUTPUT:
            logger.debug("Generated encoder %s:\n%s", cache_key, source)
        return result

    def static_gen(self, cache_key, type_, output_dir):
        """
        Persist the generated encoder of `type_` and of every type reachable from it
        under `output_dir`. No encoder is installed.
        """
        with self._lock:
            if cache_key in self._generated_sources or cache_key in self._failed:
                return
            if (
                self.jsoniter.registry.lookup_encoder(cache_key) is not None
                or self._from_extensions(cache_key, type_) is not None
                or get_native_encoder(self.jsoniter, type_) is not None
            ):
                return
            result = self._synthesize(cache_key, type_)
            try:
                codegen.persist(cache_key, result, output_dir)
            except Exception as e:
                raise self._codegen_error(type_, source=result, cause=e) from e
            for nested in result.encoder_types:
                self.static_gen(encoder_cache_key(nested), nested, output_dir)
