#!/usr/bin/env python3
"""
KUBECONF CANONICALIZER - Ecosystem-Normal YAML
----------------------------------------------
Round-trips YAML through a single fixed dialect so that output from
divergent producers (different indentation, wrapping, key order, quoting)
collapses to one byte sequence.

The dialect follows the Kubernetes YAML codec, which routes documents
through JSON before emitting them:
  * YAML 1.1 scalar rules (yes/no/on/off are booleans, 0755 is octal)
  * mapping keys are strings, sorted lexicographically
  * timestamps stay the text they were written as
  * block style, 2-space mappings, sequences flush with their parent key
  * a document that is just an empty mapping becomes an empty file

Author: KubeConf Team
Date: 2026-10-19
"""

import base64
import datetime
import io
import logging
from typing import Any, Optional, Set, Union

from ruamel.yaml import YAML, YAMLError
from ruamel.yaml.constructor import SafeConstructor
from ruamel.yaml.resolver import VersionedResolver

from kubeconf.core.errors import ParseError

logger = logging.getLogger("kubeconf.codec")

EMPTY_MAPPING = "{}\n"
DOCUMENT_END = "...\n"


class _Yaml11Resolver(VersionedResolver):
    """Applies YAML 1.1 implicit typing regardless of any %YAML directive."""

    @property
    def processing_version(self) -> Any:
        return (1, 1)


class _CanonicalConstructor(SafeConstructor):
    """SafeConstructor that keeps timestamps as plain strings."""


_CanonicalConstructor.add_constructor(
    'tag:yaml.org,2002:timestamp', SafeConstructor.construct_yaml_str
)


def _key_text(key: Any) -> str:
    if isinstance(key, (dict, list, tuple, set, frozenset)):
        raise ParseError(f"unsupported mapping key {key!r}: keys must be scalars")
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    return str(key)


def _to_json_compatible(value: Any, active: Optional[Set[int]] = None) -> Any:
    """
    Rewrites a loaded tree into the shape a JSON round trip would leave:
    string keys in sorted order, lists instead of tuples, no raw bytes.
    Shared aliases are expanded; an alias that refers to its own
    enclosing node is rejected.
    """
    if not isinstance(value, (dict, list, tuple, set, frozenset)):
        if isinstance(value, bytes):
            return base64.b64encode(value).decode('ascii')
        if isinstance(value, (datetime.date, datetime.datetime)):
            return value.isoformat()
        return value

    active = set() if active is None else active
    if id(value) in active:
        raise ParseError("anchor value contains itself")
    active.add(id(value))
    try:
        if isinstance(value, dict):
            converted = {_key_text(k): _to_json_compatible(v, active) for k, v in value.items()}
            return {k: converted[k] for k in sorted(converted)}
        if isinstance(value, (set, frozenset)):
            return {k: None for k in sorted(_key_text(item) for item in value)}
        return [_to_json_compatible(item, active) for item in value]
    finally:
        active.discard(id(value))


class Canonicalizer:
    """
    Parses YAML with the ecosystem dialect and re-emits it canonically.
    Instances hold only emitter settings. Parser and emitter state is
    built per call, so normalize() has no side effects.
    """

    def __init__(self, width: int = 80):
        self.width = width

    def _loader(self) -> YAML:
        loader = YAML(typ='safe', pure=True)
        loader.Resolver = _Yaml11Resolver
        loader.Constructor = _CanonicalConstructor
        return loader

    def _dumper(self) -> YAML:
        dumper = YAML(typ='safe', pure=True)
        dumper.Resolver = _Yaml11Resolver
        dumper.default_flow_style = False
        dumper.allow_unicode = True
        # Sequences sit flush under their key: "key:\n- item"
        dumper.indent(mapping=2, sequence=2, offset=0)
        dumper.width = self.width
        return dumper

    def _load_first(self, data: Union[bytes, str]) -> Any:
        """Only the first document of a stream counts; the rest is never parsed."""
        docs = self._loader().load_all(data)
        try:
            return next(docs, None)
        finally:
            docs.close()

    def decode(self, data: Union[bytes, str]) -> Any:
        """Parses data into a JSON-compatible tree (dicts, lists, scalars)."""
        try:
            tree = self._load_first(data)
        except YAMLError as e:
            err = ParseError.from_yaml_error(e)
            logger.debug(f"Rejected non-YAML input: {err}")
            raise err from e
        try:
            return _to_json_compatible(tree)
        except ParseError as err:
            logger.debug(f"Rejected YAML with no JSON equivalent: {err}")
            raise

    def encode(self, tree: Any) -> str:
        """Emits a decoded tree in canonical form (no empty-mapping collapse)."""
        stream = io.StringIO()
        self._dumper().dump(tree, stream)
        encoded = stream.getvalue()
        # Root plain scalars are open-ended; drop the '...' marker ruamel adds
        if not isinstance(tree, (dict, list)) and encoded.endswith(DOCUMENT_END):
            encoded = encoded[:-len(DOCUMENT_END)]
        return encoded

    def normalize(self, data: Union[bytes, str]) -> bytes:
        """
        Returns the canonical encoding of data, or b"" when the document
        is an empty mapping.

        Raises:
            ParseError: data is not syntactically valid YAML, or uses a
                non-scalar mapping key or a self-referencing alias.
        """
        encoded = self.encode(self.decode(data))
        if encoded == EMPTY_MAPPING:
            logger.debug("Document is an empty mapping; collapsing to empty output")
            return b""
        return encoded.encode('utf-8')


_default = Canonicalizer()


def normalize(data: Union[bytes, str]) -> bytes:
    """Canonicalizes data with the default Canonicalizer settings."""
    return _default.normalize(data)
