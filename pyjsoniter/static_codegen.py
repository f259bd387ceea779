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

"""Ahead-of-time generation of encoder modules."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from pyjsoniter._jsoniter import Jsoniter
from pyjsoniter.encoder_resolver import EncodingMode
from pyjsoniter.error import JsonError
from pyjsoniter.type_util import encoder_cache_key, load_class

logger = logging.getLogger(__name__)


def static_gen_encoders(types: Iterable, output_dir, jsoniter: Jsoniter = None) -> List[str]:
    """
    Write the generated encoder module of every type in `types`, and of every type
    reachable from them, under `output_dir`.

    Put `output_dir` on `sys.path` and run with `DYNAMIC_MODE` or `STATIC_MODE` to
    use the modules. Any failure aborts the whole batch.

    Returns:
        Cache keys of the generated modules, which are also their module names.
    """
    if jsoniter is None:
        jsoniter = Jsoniter(mode=EncodingMode.DYNAMIC_MODE)
    output_dir = str(output_dir)
    resolver = jsoniter.encoder_resolver
    generated_before = set(resolver.generated_sources)
    for type_ in types:
        logger.info("Generating encoder modules for %s", type_)
        resolver.static_gen(encoder_cache_key(type_), type_, output_dir)
    return sorted(set(resolver.generated_sources) - generated_before)


def resolve_type_name(name: str):
    """Load a class named `module:QualName` or `module#QualName`."""
    if ":" in name:
        name = name.replace(":", "#", 1)
    if "#" not in name:
        raise ValueError(f"Type name should be module:QualName instead of {name}")
    return load_class(name)


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="python -m pyjsoniter.static_codegen",
        description="Generate pyjsoniter encoder modules ahead of time",
    )

    parser.add_argument(
        "types",
        nargs="+",
        metavar="TYPE",
        help="Classes to generate encoders for, as module:QualName",
    )

    parser.add_argument(
        "--output-dir",
        "-o",
        type=Path,
        default=Path("./generated"),
        help="Output directory, to be put on sys.path when loading. Default: ./generated",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every generated module",
    )

    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parsed = parse_args(args)
    logging.basicConfig(level=logging.DEBUG if parsed.verbose else logging.WARNING)

    try:
        types = [resolve_type_name(name) for name in parsed.types]
    except (ImportError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parsed.output_dir.mkdir(parents=True, exist_ok=True)
    try:
        cache_keys = static_gen_encoders(types, parsed.output_dir)
    except (JsonError, TypeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for cache_key in cache_keys:
        print(f"  Generated: {cache_key}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
