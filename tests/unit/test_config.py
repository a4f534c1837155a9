# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for generator configuration."""

from pathlib import Path

import pytest

from intermediary import ConfigError, GeneratorConfig
from intermediary.config import COUNTER_FILE_ENV, normalize_namespace


def test_ph0_cfg_001_defaults_classify_top_level_package_as_obfuscated() -> None:
    config = GeneratorConfig.build(environ={})

    assert config.target_namespace == "net/minecraft/"
    assert config.is_obfuscated("a")
    assert config.is_obfuscated("a$b")
    assert not config.is_obfuscated("com/example/Api")
    assert config.is_included("anything")
    assert config.map_fields and config.map_methods
    assert config.counter_file is None


def test_ph0_cfg_007_default_pattern_matches_whole_qualified_name() -> None:
    config = GeneratorConfig.build(environ={})

    assert config.is_obfuscated("a$1")
    assert not config.is_obfuscated("pkg/Outer$1")
    assert GeneratorConfig.build(
        obfuscation_patterns=[r"pkg/[^/]*"], environ={}
    ).is_obfuscated("pkg/Outer$1")


def test_ph0_cfg_002_custom_patterns_replace_default() -> None:
    config = GeneratorConfig.build(
        obfuscation_patterns=[r"com/x/[^/]*"],
        include_patterns=[r"^com/", r"Api$"],
        environ={},
    )

    assert config.is_obfuscated("com/x/a")
    assert not config.is_obfuscated("a")
    assert config.is_included("com/x/a")
    assert config.is_included("org/Api")
    assert not config.is_included("a")


def test_ph0_cfg_003_only_class_names_disables_member_mapping() -> None:
    config = GeneratorConfig.build(only_class_names=True, environ={})

    assert not config.map_fields
    assert not config.map_methods


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("net/minecraft", "net/minecraft/"), ("pkg/", "pkg/"), ("", "")],
)
def test_ph0_cfg_004_normalizes_namespace(raw: str, expected: str) -> None:
    assert normalize_namespace(raw) == expected
    assert GeneratorConfig.build(target_namespace=raw, environ={}).target_namespace == expected


def test_ph0_cfg_005_rejects_invalid_patterns() -> None:
    with pytest.raises(ConfigError):
        GeneratorConfig.build(obfuscation_patterns=["("], environ={})
    with pytest.raises(ConfigError):
        GeneratorConfig.build(include_patterns=["[a-"], environ={})


def test_ph0_cfg_006_counter_file_option_overrides_environment(tmp_path: Path) -> None:
    from_env = GeneratorConfig.build(environ={COUNTER_FILE_ENV: str(tmp_path / "env.txt")})
    from_option = GeneratorConfig.build(
        counter_file=str(tmp_path / "option.txt"),
        environ={COUNTER_FILE_ENV: str(tmp_path / "env.txt")},
    )

    assert from_env.counter_file == tmp_path / "env.txt"
    assert from_option.counter_file == tmp_path / "option.txt"
