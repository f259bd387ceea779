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


class Extension:
    """
    Hook into decoder/encoder resolution.

    Extensions are consulted in registration order; the first one returning a
    non-None decoder or encoder wins and its result is cached for the type.
    """

    def create_decoder(self, cache_key, type_):
        return None

    def create_encoder(self, cache_key, type_):
        return None

    def update_class_descriptor(self, desc):
        """Adjust a freshly built ClassDescriptor in place (rename, mark required...)."""
