#!/usr/bin/env python3
"""
KUBECONF ERRORS
---------------
Exception types raised by the codecs and the configuration model.
File-system failures are not wrapped: they surface as the builtin
OSError family straight from the read or write that failed.

Author: KubeConf Team
Date: 2026-10-19
"""

from typing import Optional


class KubeConfError(Exception):
    """Base class for every error raised by kubeconf."""


class ParseError(KubeConfError):
    """
    Raised when input is not valid YAML, or when a modeled KUBECONFIG
    field holds a value of the wrong kind (e.g. a list where a string
    is expected).
    """

    def __init__(self, problem: str, path: str = "",
                 line: Optional[int] = None, column: Optional[int] = None):
        self.problem = problem
        self.path = path      # Dotted key path, e.g. 'clusters[0].cluster.server'
        self.line = line      # 1-based, None when the parser gave no position
        self.column = column
        super().__init__(self._render())

    def _render(self) -> str:
        where = ""
        if self.line is not None:
            where = f"L{self.line}:C{self.column}: "
        if self.path:
            return f"{where}{self.path}: {self.problem}"
        return f"{where}{self.problem}"

    def under(self, key: str) -> "ParseError":
        """Returns a copy of this error re-rooted beneath a parent key."""
        if not self.path:
            path = key
        elif self.path.startswith("["):
            path = f"{key}{self.path}"
        else:
            path = f"{key}.{self.path}"
        return ParseError(self.problem, path, self.line, self.column)

    @classmethod
    def from_yaml_error(cls, err: Exception) -> "ParseError":
        """Builds a ParseError from a ruamel.yaml error, keeping its position."""
        mark = getattr(err, 'problem_mark', None) or getattr(err, 'context_mark', None)
        problem = getattr(err, 'problem', None) or str(err)
        if mark is not None:
            return cls(problem, line=mark.line + 1, column=mark.column + 1)
        return cls(problem)
