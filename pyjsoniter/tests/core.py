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

import collections
import sys
import threading

import pytest

from pyjsoniter.descriptor import DescriptorProvider

try:
    import numpy as np
except ImportError:
    np = None

GENERATED_PACKAGE = "pyjsoniter_codegen"


def require_numpy(func):
    return pytest.mark.skipif(np is None, reason="numpy not installed")(func)


class CountingDescriptorProvider(DescriptorProvider):
    """Counts how many times each class is described."""

    def __init__(self):
        self.counts = collections.Counter()
        self._lock = threading.Lock()

    def describe(self, cls):
        with self._lock:
            self.counts[cls] += 1
        return super().describe(cls)


def drop_generated_modules():
    for name in list(sys.modules):
        if name == GENERATED_PACKAGE or name.startswith(GENERATED_PACKAGE + "."):
            del sys.modules[name]
