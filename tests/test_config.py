"""Tests for config loading and validation."""

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from vouch.config import ReporterType, VouchConfig, find_config, load_config
from vouch.matchers import DEFAULT_TOLERANCE


@pytest.fixture()
def tmp_yaml(tmp_path):
    """Helper that writes YAML content to a temp file and returns its path."""

    def _write(content: str) -> Path:
        p = tmp_path / "vouch.yaml"
        p.write_text(textwrap.dedent(content))
        return p

    return _write


def test_defaults():
    cfg = VouchConfig()
    assert cfg.reporter is ReporterType.MINIMAL
    assert cfg.parallel == 1
    assert cfg.test_pattern == "test"
    assert cfg.filter is None
    assert cfg.continue_on_failure is False
    assert cfg.tolerance == DEFAULT_TOLERANCE
    assert cfg.poll_interval == 1.0


def test_load_full_config(tmp_yaml):
    path = tmp_yaml("""\
        reporter: verbose
        parallel: 4
        test_pattern: "^check_"
        filter: parser
        filter_regex: true
        continue_on_failure: true
        tolerance: 0.001
        poll_interval: 0.5
    """)
    cfg = load_config(path)
    assert cfg.reporter is ReporterType.VERBOSE
    assert cfg.parallel == 4
    assert cfg.test_pattern == "^check_"
    assert cfg.filter == "parser"
    assert cfg.filter_regex is True
    assert cfg.continue_on_failure is True
    assert cfg.tolerance == 0.001
    assert cfg.poll_interval == 0.5


def test_empty_file_gives_defaults(tmp_yaml):
    assert load_config(tmp_yaml("")) == VouchConfig()


def test_relative_output_paths_resolve_against_config_dir(tmp_yaml, tmp_path):
    path = tmp_yaml("""\
        junit_xml: reports/junit.xml
        log_file: /var/log/vouch.log
    """)
    cfg = load_config(path)
    assert cfg.junit_xml == str((tmp_path / "reports" / "junit.xml").resolve())
    assert cfg.log_file == "/var/log/vouch.log"


@pytest.mark.parametrize(
    "content",
    [
        "parallel: 0\n",
        "parallel: 101\n",
        "tolerance: -1\n",
        "poll_interval: 0\n",
        "reporter: dots\n",
        "test_pattern: ''\n",
        "test_pattern: '('\n",
        "unknown_key: 1\n",
    ],
)
def test_invalid_values_rejected(tmp_yaml, content):
    with pytest.raises(ValidationError):
        load_config(tmp_yaml(content))


def test_non_mapping_rejected(tmp_yaml):
    with pytest.raises(ValueError, match="mapping"):
        load_config(tmp_yaml("- just\n- a list\n"))


def test_find_config(tmp_path):
    assert find_config(tmp_path) is None
    (tmp_path / "vouch.yaml").write_text("parallel: 2\n")
    assert find_config(tmp_path) == tmp_path / "vouch.yaml"
