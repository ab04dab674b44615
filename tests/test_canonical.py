#!/usr/bin/env python3
"""
KUBECONF CANONICALIZER SUITE
----------------------------
Verifies that normalize() collapses formatting differences, is
idempotent, and maps empty-mapping documents to empty output.

Author: KubeConf Team
Date: 2026-10-19
"""

import pytest
from ruamel.yaml import YAML

from kubeconf.codec.canonical import Canonicalizer, normalize
from kubeconf.core.errors import ParseError

SAMPLES = [
    "apiVersion: v1\nkind: Pod\nmetadata:\n  name: nginx\nspec:\n  containers:\n  - name: nginx\n    image: nginx",
    "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: cfg\ndata:\n  conf: |\n    line1\n    line2\n",
    "rules:\n- apiGroups: ['']\n  resources: ['pods']\n  verbs: ['get', 'watch', 'list']",
    "description: " + " ".join(["word"] * 40) + "\n",
    "created: 2001-12-14\nmode: 0755\nenabled: yes\nratio: 1.5\n",
    "- 1\n- two\n- {three: 3}\n",
    "# cluster defaults\nbase: &defaults\n  cpu: 1  # per pod\nworker: *defaults\n",
    "plain scalar",
    "",
]


@pytest.mark.parametrize("document", SAMPLES)
def test_idempotence(document):
    """
    IDEMPOTENCE TEST: canonical output is already canonical.
    """
    once = normalize(document)
    assert normalize(once) == once


@pytest.mark.parametrize("document", SAMPLES[:4])
def test_semantics_preserved(document):
    """
    DATA INTEGRITY: normalization changes layout, never content.
    """
    safe = YAML(typ='safe', pure=True)
    assert safe.load(normalize(document)) == safe.load(document)


def test_keys_sorted():
    assert normalize("b: 2\na: 1\n") == b"a: 1\nb: 2\n"
    assert normalize("b: 2\na: 1\n") == normalize("b: 2\na: 1\n")


def test_nested_layout():
    """Mappings indent by two; sequences sit flush under their key."""
    messy = (
        "spec:\n"
        "    containers:\n"
        "        -   name: web\n"
        "            image: nginx\n"
    )
    assert normalize(messy) == (
        b"spec:\n"
        b"  containers:\n"
        b"  - image: nginx\n"
        b"    name: web\n"
    )


def test_equivalent_documents_converge():
    """
    CANONICAL FORM TEST: indentation, quoting, flow style and key order
    differences all disappear.
    """
    variants = [
        "name: web\nports:\n- 80\n- 443\nlabels:\n  tier: front\n",
        "labels: {tier: front}\nname: 'web'\nports: [80, 443]\n",
        '{"ports": [80, 443], "name": "web", "labels": {"tier": "front"}}',
        "ports:\n    - 80\n    - 443\nname:    \"web\"\nlabels:\n        tier: front\n",
    ]
    results = {normalize(v) for v in variants}
    assert len(results) == 1


@pytest.mark.parametrize("document", [
    "{}\n",
    "{}",
    "--- {}\n",
    "# nothing to see\n{}\n",
    "{   }",
])
def test_empty_mapping_collapses(document):
    assert normalize(document) == b""


def test_empty_nested_mapping_is_kept():
    assert normalize("a: {}\n") == b"a: {}\n"


def test_null_document():
    """Only the empty mapping collapses; a null document stays null."""
    assert normalize("") == b"null\n"
    assert normalize("~\n") == b"null\n"


def test_root_scalar_has_no_document_end_marker():
    assert normalize("hello") == b"hello\n"


def test_yaml_11_scalars():
    """
    Ecosystem dialect: yes/no are booleans, leading-zero integers are
    octal, and strings that would be misread are quoted on the way out.
    """
    assert normalize("enabled: yes\n") == b"enabled: true\n"
    assert normalize("mode: 0755\n") == b"mode: 493\n"
    assert normalize("answer: 'yes'\n") == b"answer: 'yes'\n"
    assert normalize("version: '1.10'\n") == b"version: '1.10'\n"


def test_timestamps_stay_strings():
    out = normalize("created: 2001-12-14\n")
    assert YAML(typ='safe', pure=True).load(out) is not None
    assert b"2001-12-14" in out
    assert normalize(out) == out


def test_non_string_keys_become_strings():
    assert normalize("1: one\ntrue: yes\n") == b"'1': one\n'true': true\n"


def test_only_first_document_counts():
    assert normalize("a: 1\n---\nb: 2\n") == b"a: 1\n"


def test_bytes_and_text_agree():
    assert normalize(b"b: 2\na: 1\n") == normalize("b: 2\na: 1\n")


def test_unicode_passthrough():
    assert normalize("name: café\n") == "name: café\n".encode('utf-8')


@pytest.mark.parametrize("garbage", [
    "a: [1, 2\n",
    "key: value\n  bad: indent\n",
    "a: 'unterminated\n",
    b"a: \xc3\x28\n",
    "a: &loop [1, *loop]\n",
    "? [1, 2]\n: x\n",
])
def test_invalid_yaml_raises_parse_error(garbage):
    with pytest.raises(ParseError):
        normalize(garbage)


def test_parse_error_carries_position():
    with pytest.raises(ParseError) as info:
        normalize("first: ok\nsecond: [1, 2\n")
    assert info.value.line is not None
    assert info.value.line >= 2


def test_width_is_configurable():
    text = "description: " + " ".join(["word"] * 40) + "\n"
    narrow = Canonicalizer(width=40).normalize(text)
    wide = Canonicalizer(width=1000).normalize(text)
    assert len(narrow.splitlines()) > 1
    assert len(wide.splitlines()) == 1


def test_comments_dropped_and_aliases_expanded():
    """Comments vanish and aliases are written out in full, with no anchors."""
    document = "# cluster defaults\nbase: &defaults\n  cpu: 1  # per pod\nworker: *defaults\n"
    out = normalize(document)
    assert out == b"base:\n  cpu: 1\nworker:\n  cpu: 1\n"
    assert b"#" not in out
    assert b"&" not in out


def test_self_referencing_alias_is_rejected():
    with pytest.raises(ParseError) as info:
        normalize("a: &loop [1, *loop]\n")
    assert "contains itself" in str(info.value)


def test_shared_alias_is_not_a_cycle():
    assert normalize("a: &x [1]\nb: *x\nc: *x\n") == b"a:\n- 1\nb:\n- 1\nc:\n- 1\n"


def test_complex_mapping_key_is_rejected():
    with pytest.raises(ParseError) as info:
        normalize("? [1, 2]\n: x\n")
    assert "keys must be scalars" in str(info.value)
