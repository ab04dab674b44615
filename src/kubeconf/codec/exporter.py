#!/usr/bin/env python3
"""
KUBECONF EXPORTER - General-Purpose Round-Trip Codec
----------------------------------------------------
The codec behind KubeConfig load/serialize/persist. Unlike the
Canonicalizer it keeps key order and quoting as written, so unknown
KUBECONFIG keys come back out the way they went in.

Numbers and timestamps also remember the text they were parsed from.
String fields of the model read that text back, so a context named
`1.20` stays `1.20` instead of becoming the float 1.2.

Author: KubeConf Team
Date: 2026-10-19
"""

import datetime
import io
import logging
from typing import Any, Optional, Union

from ruamel.yaml import YAML, YAMLError
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.constructor import RoundTripConstructor
from ruamel.yaml.scalarint import ScalarInt
from ruamel.yaml.timestamp import TimeStamp

from kubeconf.core.errors import ParseError

logger = logging.getLogger("kubeconf.codec")

SOURCE_TEXT = '_kubeconf_source_text'


def source_text(value: Any) -> Optional[str]:
    """The scalar text a loaded number or timestamp was built from, if recorded."""
    return getattr(value, SOURCE_TEXT, None)


class _SourceTextConstructor(RoundTripConstructor):
    """
    RoundTripConstructor that tags ints, floats and timestamps with their
    scalar text. The values keep their ruamel types, so extension keys
    still dump exactly as they were loaded.
    """

    def _remember(self, value: Any, node: Any) -> Any:
        # Plain dates and the .inf/.nan floats have no __dict__; their
        # str()/isoformat() already equals the text the resolver matched
        if hasattr(value, '__dict__'):
            setattr(value, SOURCE_TEXT, node.value)
        return value

    def construct_yaml_int(self, node: Any) -> Any:
        value = super().construct_yaml_int(node)
        if type(value) is int:
            value = ScalarInt(value)
        return self._remember(value, node)

    def construct_yaml_float(self, node: Any) -> Any:
        return self._remember(super().construct_yaml_float(node), node)

    def construct_yaml_timestamp(self, node: Any, values: Any = None) -> Any:
        value = super().construct_yaml_timestamp(node, values)
        if type(value) is datetime.datetime:
            value = TimeStamp(value.year, value.month, value.day, value.hour,
                              value.minute, value.second, value.microsecond, value.tzinfo)
        return self._remember(value, node)


for _tag in ('int', 'float', 'timestamp'):
    _SourceTextConstructor.add_constructor(
        f'tag:yaml.org,2002:{_tag}', getattr(_SourceTextConstructor, f'construct_yaml_{_tag}')
    )


class KubeExporter:
    """
    Reads KUBECONFIG text into CommentedMaps and writes them back out.
    """

    def __init__(self, width: int = 4096):
        self.yaml = YAML(typ='rt')
        self.yaml.Constructor = _SourceTextConstructor
        self.yaml.preserve_quotes = True
        # Standard K8s: 2 spaces, but sequences are indented 4 (offset 2)
        # for maximum readability in IDEs.
        self.yaml.indent(mapping=2, sequence=4, offset=2)
        self.yaml.width = width

    def load(self, data: Union[bytes, str]) -> CommentedMap:
        """
        Parses the first KUBECONFIG document in data. Empty input yields
        an empty map.

        Raises:
            ParseError: malformed YAML, or a root that is not a mapping.
        """
        try:
            docs = self.yaml.load_all(data)
            try:
                doc = next(docs, None)
            finally:
                docs.close()
        except YAMLError as e:
            err = ParseError.from_yaml_error(e)
            logger.debug(f"KUBECONFIG is not valid YAML: {err}")
            raise err from e

        if doc is None:
            return CommentedMap()
        if not isinstance(doc, dict):
            raise ParseError(f"expected a mapping at the document root, got {type(doc).__name__}")
        return doc

    def export(self, data: Any) -> str:
        """Dumps data to a YAML string. Errors propagate as YAMLError."""
        stream = io.StringIO()
        self.yaml.dump(data, stream)
        return stream.getvalue()
