#!/usr/bin/env python3
"""
KUBECONF CORE MODELS
--------------------
An opinionated subset of the KUBECONFIG schema for apps that read and
rewrite the file. Contexts, clusters and users are ordered lists of named
entries rather than maps, because tooling treats their order as meaningful.

Every entity carries an `extra` mapping. Any key the schema does not model
is captured there on load and written back inline, at the same level, on
serialize. New upstream fields therefore survive a load/edit/persist cycle
untouched until (and if) they graduate to a named field here.

Author: KubeConf Team
Date: 2026-10-19
"""

import datetime
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ruamel.yaml import YAMLError
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.scalarstring import PlainScalarString

from kubeconf.codec.exporter import KubeExporter, source_text
from kubeconf.core.errors import ParseError

logger = logging.getLogger("kubeconf.models")

PathLike = Union[str, os.PathLike]

# The file may hold private keys and tokens
FILE_MODE = 0o600


def _wire(key: str, decode: Callable[[Any], Any], omitempty: bool = True) -> Dict[str, Any]:
    """Field metadata: the on-wire YAML key and how to decode its value."""
    return {"key": key, "decode": decode, "omitempty": omitempty}


def _kind(value: Any) -> str:
    if isinstance(value, dict):
        return "mapping"
    if isinstance(value, list):
        return "sequence"
    return type(value).__name__


# --- Loose decoders -------------------------------------------------------

def _as_str(value: Any) -> str:
    """Any scalar is accepted and rendered as the text it was written as."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    text = source_text(value)
    if text is not None:
        return text
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        raise ParseError(f"expected a string, got {_kind(value)}")
    return str(value)


# YAML 1.1 booleans, as kubectl's decoder reads them from plain scalars
_BOOL_WORDS = {
    word: truth
    for truth, words in (
        (True, ("y", "Y", "yes", "Yes", "YES", "on", "On", "ON")),
        (False, ("n", "N", "no", "No", "NO", "off", "Off", "OFF")),
    )
    for word in words
}


def _as_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    # Quoted and block scalars load as ScalarString subclasses and stay text
    plain = type(value) is str or isinstance(value, PlainScalarString)
    if plain and value in _BOOL_WORDS:
        return _BOOL_WORDS[value]
    raise ParseError(f"expected a boolean, got {_kind(value)}")


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ParseError(f"expected a sequence, got {_kind(value)}")
    items = []
    for i, item in enumerate(value):
        try:
            items.append(_as_str(item))
        except ParseError as e:
            raise e.under(f"[{i}]") from None
    return items


def _as_str_map(value: Any) -> Optional[Dict[str, str]]:
    # None stays None: an absent map and an empty map are different states
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ParseError(f"expected a mapping, got {_kind(value)}")
    result = {}
    for key, item in value.items():
        try:
            result[_as_str(key)] = _as_str(item)
        except ParseError as e:
            raise e.under(str(key)) from None
    return result


def _nested(cls: type) -> Callable[[Any], Any]:
    def decode(value: Any) -> Any:
        if value is None:
            return None
        return cls.from_dict(value)
    return decode


def _entries(cls: type) -> Callable[[Any], List[Any]]:
    def decode(value: Any) -> List[Any]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ParseError(f"expected a sequence, got {_kind(value)}")
        items = []
        for i, item in enumerate(value):
            try:
                items.append(cls.from_dict(item))
            except ParseError as e:
                raise e.under(f"[{i}]") from None
        return items
    return decode


# --- Encoding -------------------------------------------------------------

def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    return isinstance(value, (str, list, dict)) and len(value) == 0


def _encode(value: Any) -> Any:
    if isinstance(value, _Schema):
        return value.to_dict()
    if isinstance(value, list):
        return [_encode(item) for item in value]
    return value


class _Schema:
    """
    Shared (de)serialization for KUBECONFIG entities. Subclasses are
    dataclasses whose wire fields carry `_wire` metadata plus an `extra`
    field for everything else.
    """

    @classmethod
    def _wire_fields(cls) -> List[Any]:
        return [f for f in fields(cls) if "key" in f.metadata]

    @classmethod
    def from_dict(cls, data: Any) -> Any:
        """
        Builds an entity from a loaded mapping. Unmodeled keys land in
        `extra` in their original order.

        Raises:
            ParseError: a modeled key holds a value of the wrong kind.
        """
        if not isinstance(data, dict):
            raise ParseError(f"expected a mapping, got {_kind(data)}")

        values = {}
        wire_keys = set()
        for f in cls._wire_fields():
            key = f.metadata["key"]
            wire_keys.add(key)
            if key not in data:
                continue
            try:
                values[f.name] = f.metadata["decode"](data[key])
            except ParseError as e:
                raise e.under(key) from None

        extra = {k: v for k, v in data.items() if k not in wire_keys}
        return cls(**values, extra=extra)

    def to_dict(self) -> CommentedMap:
        """Renders the entity as an ordered map: modeled keys, then extras."""
        out = CommentedMap()
        wire_keys = set()
        for f in self._wire_fields():
            key = f.metadata["key"]
            wire_keys.add(key)
            value = getattr(self, f.name)
            if f.metadata["omitempty"] and _is_empty(value):
                continue
            out[key] = _encode(value)

        for key, value in self.extra.items():
            if key in wire_keys:
                logger.warning(f"Dropping extra key '{key}' on {type(self).__name__}: "
                               f"it collides with a modeled field")
                continue
            out[key] = value
        return out


@dataclass(repr=False)
class AuthProvider(_Schema):
    """
    Holds the configuration for a named auth provider. `config` routinely
    contains client secrets and refresh tokens, so the repr never shows it.
    """
    name: str = field(default="", metadata=_wire("name", _as_str, omitempty=False))
    config: Optional[Dict[str, str]] = field(default=None, metadata=_wire("config", _as_str_map))
    extra: Dict[str, Any] = field(default_factory=dict)

    def redacted(self) -> str:
        """
        Safe-to-log rendering: the name verbatim, the config replaced by a
        placeholder. An absent config and an empty one render differently.
        """
        config = "None" if self.config is None else "{--- REDACTED ---}"
        return f"AuthProvider(name={self.name!r}, config={config})"

    def __repr__(self) -> str:
        return self.redacted()

    __str__ = __repr__


@dataclass
class User(_Schema):
    """
    Identity information (upstream "AuthInfo"). Assumes all credential
    data is inlined in the KUBECONFIG itself rather than referenced by path.
    """
    client_certificate_data: str = field(default="", metadata=_wire("client-certificate-data", _as_str))
    client_key_data: str = field(default="", metadata=_wire("client-key-data", _as_str))
    token: str = field(default="", metadata=_wire("token", _as_str))
    act_as: str = field(default="", metadata=_wire("act-as", _as_str))
    act_as_uid: str = field(default="", metadata=_wire("act-as-uid", _as_str))
    act_as_groups: List[str] = field(default_factory=list, metadata=_wire("act-as-groups", _as_str_list))
    username: str = field(default="", metadata=_wire("username", _as_str))
    password: str = field(default="", metadata=_wire("password", _as_str))
    auth_provider: Optional[AuthProvider] = field(
        default=None, metadata=_wire("auth-provider", _nested(AuthProvider)))
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NamedUser(_Schema):
    """Associates a name with a user."""
    name: str = field(default="", metadata=_wire("name", _as_str, omitempty=False))
    user: Optional[User] = field(default=None, metadata=_wire("user", _nested(User), omitempty=False))
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Cluster(_Schema):
    """Where a Kubernetes API server lives and how to trust it."""
    server: str = field(default="", metadata=_wire("server", _as_str, omitempty=False))
    tls_server_name: str = field(default="", metadata=_wire("tls-server-name", _as_str))
    insecure_skip_tls_verify: bool = field(
        default=False, metadata=_wire("insecure-skip-tls-verify", _as_bool))
    certificate_authority_data: str = field(
        default="", metadata=_wire("certificate-authority-data", _as_str))
    proxy_url: str = field(default="", metadata=_wire("proxy-url", _as_str))
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NamedCluster(_Schema):
    """Associates a name with a cluster."""
    name: str = field(default="", metadata=_wire("name", _as_str, omitempty=False))
    cluster: Optional[Cluster] = field(
        default=None, metadata=_wire("cluster", _nested(Cluster), omitempty=False))
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Context(_Schema):
    """
    Mostly cluster, user and namespace. `cluster` and `user` are names,
    resolved against the owning KubeConfig's lists.
    """
    cluster: str = field(default="", metadata=_wire("cluster", _as_str, omitempty=False))
    user: str = field(default="", metadata=_wire("user", _as_str, omitempty=False))
    namespace: str = field(default="", metadata=_wire("namespace", _as_str))
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NamedContext(_Schema):
    """Associates a name with a context."""
    name: str = field(default="", metadata=_wire("name", _as_str, omitempty=False))
    context: Optional[Context] = field(
        default=None, metadata=_wire("context", _nested(Context), omitempty=False))
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class KubeConfig(_Schema):
    """
    The root of a KUBECONFIG file.

    Instances are independent and unsynchronized; callers sharing one
    across threads must serialize mutation themselves.
    """
    clusters: List[NamedCluster] = field(
        default_factory=list, metadata=_wire("clusters", _entries(NamedCluster)))
    contexts: List[NamedContext] = field(
        default_factory=list, metadata=_wire("contexts", _entries(NamedContext)))
    users: List[NamedUser] = field(
        default_factory=list, metadata=_wire("users", _entries(NamedUser)))
    current_context: str = field(default="", metadata=_wire("current-context", _as_str))
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: PathLike) -> "KubeConfig":
        config = cls()
        config.load(path)
        return config

    def load(self, path: PathLike):
        """
        Replaces this configuration with the contents of the file at path.

        Raises:
            OSError: the file could not be read.
            ParseError: the file is not valid YAML or does not fit the schema.
        """
        logger.debug(f"Loading KUBECONFIG from {path}")
        self.loads(Path(path).read_bytes())

    def loads(self, data: Union[bytes, str]):
        """Same as load(), from an in-memory document."""
        loaded = self.from_dict(KubeExporter().load(data))
        for f in fields(self):
            setattr(self, f.name, getattr(loaded, f.name))

    def serialize(self) -> bytes:
        """
        Marshals the current state to YAML. The in-memory graph is the
        caller's to keep serializable, so a failure here is a bug, not
        a recoverable condition.
        """
        try:
            text = KubeExporter().export(self.to_dict())
        except YAMLError as e:
            logger.error(f"KUBECONFIG could not be serialized: {e}")
            raise RuntimeError(f"KUBECONFIG is not serializable: {e}") from e
        return text.encode('utf-8')

    def persist(self, path: PathLike):
        """
        Writes the configuration to path, creating or truncating it, with
        owner-only read/write permissions. The write is not atomic.

        Raises:
            OSError: the file could not be opened or written.
        """
        data = self.serialize()
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
        with os.fdopen(fd, 'wb') as f:
            # O_CREAT's mode is ignored for files that already exist
            if hasattr(os, 'fchmod'):
                os.fchmod(f.fileno(), FILE_MODE)
            f.write(data)
        logger.debug(f"Persisted KUBECONFIG to {path} ({len(data)} bytes)")

    def display(self) -> str:
        """The full YAML rendering. Not redacted: secrets appear as-is."""
        return self.serialize().decode('utf-8')

    __str__ = display

    # --- Name lookups (None for dangling references) ---

    def find_cluster(self, name: str) -> Optional[Cluster]:
        return next((c.cluster for c in self.clusters if c.name == name), None)

    def find_user(self, name: str) -> Optional[User]:
        return next((u.user for u in self.users if u.name == name), None)

    def find_context(self, name: str) -> Optional[Context]:
        return next((c.context for c in self.contexts if c.name == name), None)

    def active_context(self) -> Optional[Context]:
        """The Context named by current-context, if it exists."""
        if not self.current_context:
            return None
        return self.find_context(self.current_context)
