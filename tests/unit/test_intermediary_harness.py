# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for the intermediary CLI harness."""

import io
import json
import re
from pathlib import Path

from cli.intermediary_harness import run

_DUMP = {
    "classes": [
        {
            "name": "a",
            "fields": [{"name": "a", "desc": "I"}],
            "methods": [{"name": "b", "desc": "()V", "access": 1}],
        },
        {"name": "net/example/Api", "fields": [{"name": "x", "desc": "I"}]},
    ]
}

_CONFLICT_DUMP = {
    "classes": [
        {"name": "i", "access": 0x0601, "methods": [{"name": "m", "desc": "()V", "access": 0x0401}]},
        {"name": "j", "access": 0x0601, "methods": [{"name": "m", "desc": "()V", "access": 0x0401}]},
        {"name": "p", "interfaces": ["i", "j"], "methods": [{"name": "m", "desc": "()V", "access": 1}]},
    ]
}

_CONFLICT_MAPPING = (
    "v1\tofficial\tintermediary\n"
    "METHOD\ti\t()V\tm\tmethod_10\n"
    "METHOD\tj\t()V\tm\tmethod_20\n"
)


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _write_dump(path: Path, data: dict) -> Path:
    _write_file(path, json.dumps(data))
    return path


def _strip_ansi(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


def test_ph7_cli_001_requires_command_and_arguments() -> None:
    stdout = io.StringIO()
    stderr = io.StringIO()

    assert run([], stdout=stdout, stderr=stderr) == 2
    assert run(["generate"], stdout=stdout, stderr=stderr) == 2


def test_ph7_cli_002_fails_when_input_path_is_missing(tmp_path: Path) -> None:
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        [
            "generate",
            "--input",
            str(tmp_path / "missing.json"),
            "--output",
            str(tmp_path / "out.tiny"),
        ],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 2
    assert "Input path does not exist" in stderr.getvalue()


def test_ph7_cli_003_fails_when_output_is_directory(tmp_path: Path) -> None:
    input_path = _write_dump(tmp_path / "classes.json", _DUMP)
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        ["generate", "--input", str(input_path), "--output", str(tmp_path)],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 2
    assert "Output path must be a file" in stderr.getvalue()


def test_ph7_cli_004_rejects_invalid_pattern(tmp_path: Path) -> None:
    input_path = _write_dump(tmp_path / "classes.json", _DUMP)
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        [
            "generate",
            "--input",
            str(input_path),
            "--output",
            str(tmp_path / "out.tiny"),
            "-p",
            "(",
        ],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 2
    assert "Invalid obfuscation pattern" in stderr.getvalue()


def test_ph7_cli_005_fails_on_malformed_class_dump(tmp_path: Path) -> None:
    input_path = tmp_path / "classes.json"
    _write_file(input_path, "{not json")
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        ["generate", "--input", str(input_path), "--output", str(tmp_path / "out.tiny")],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 2
    assert "Loading inputs failed" in stderr.getvalue()


def test_ph7_cli_006_generate_renders_phase_markers_and_summary(tmp_path: Path) -> None:
    input_path = _write_dump(tmp_path / "classes.json", _DUMP)
    output_path = tmp_path / "out.tiny"
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        [
            "generate",
            "--input",
            str(input_path),
            "--output",
            str(output_path),
            "--target-namespace",
            "pkg",
            "--non-interactive",
        ],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 0
    output = _strip_ansi(stdout.getvalue())
    for marker in ("validation", "load", "generate"):
        assert f"{marker}:start" in output
        assert f"{marker}:done" in output
    assert "class_records=2" in output
    assert "field_records=2" in output
    assert "method_records=1" in output
    assert "next_class=2" in output
    assert "next_field=3" in output
    assert "next_method=2" in output
    assert "elapsed_ms=" in output
    assert "status=success" in output
    assert stderr.getvalue() == ""
    assert "CLASS\ta\tpkg/class_1\n" in output_path.read_text(encoding="utf-8")


def test_ph7_cli_007_only_class_names_and_counter_file(tmp_path: Path) -> None:
    input_path = _write_dump(tmp_path / "classes.json", _DUMP)
    output_path = tmp_path / "out.tiny"
    counter_path = tmp_path / "counters.txt"
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        [
            "generate",
            "--input",
            str(input_path),
            "--output",
            str(output_path),
            "--only-class-names",
            "--counter-file",
            str(counter_path),
            "--non-interactive",
        ],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 0
    assert output_path.read_text(encoding="utf-8") == (
        "v1\tofficial\tintermediary\n"
        "CLASS\ta\tnet/minecraft/class_1\n"
        "CLASS\tnet/example/Api\tnet/example/Api\n"
        "# INTERMEDIARY-COUNTER class 2\n"
    )
    assert counter_path.read_text(encoding="utf-8") == "# INTERMEDIARY-COUNTER class 2\n"


def test_ph7_cli_008_non_interactive_conflict_fails_without_output(tmp_path: Path) -> None:
    input_path = _write_dump(tmp_path / "classes.json", _CONFLICT_DUMP)
    old_mapping = tmp_path / "old.tiny"
    _write_file(old_mapping, _CONFLICT_MAPPING)
    output_path = tmp_path / "out.tiny"
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        [
            "rewrite",
            "--input",
            str(input_path),
            "--output",
            str(output_path),
            "--old-mapping",
            str(old_mapping),
            "--non-interactive",
        ],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 2
    assert "Generation failed" in stderr.getvalue()
    assert not output_path.exists()


def test_ph7_cli_009_interactive_conflict_reads_selection(tmp_path: Path) -> None:
    input_path = _write_dump(tmp_path / "classes.json", _CONFLICT_DUMP)
    old_mapping = tmp_path / "old.tiny"
    _write_file(old_mapping, _CONFLICT_MAPPING)
    output_path = tmp_path / "out.tiny"
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        [
            "rewrite",
            "--input",
            str(input_path),
            "--output",
            str(output_path),
            "--old-mapping",
            str(old_mapping),
        ],
        stdout=stdout,
        stderr=stderr,
        stdin=io.StringIO("1\n"),
    )

    assert exit_code == 0
    output = _strip_ansi(stdout.getvalue())
    assert "Conflict detected - matched same target name! (i.m()V)" in output
    assert "Select 1-2:" in output
    assert "METHOD\tj\t()V\tm\tmethod_10\n" in output_path.read_text(encoding="utf-8")


def test_ph7_cli_010_update_requires_matches_file(tmp_path: Path) -> None:
    input_path = _write_dump(tmp_path / "classes.json", _DUMP)
    old_mapping = tmp_path / "old.tiny"
    _write_file(old_mapping, "v1\tofficial\tintermediary\n")
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        [
            "update",
            "--input",
            str(input_path),
            "--output",
            str(tmp_path / "out.tiny"),
            "--old-input",
            str(input_path),
            "--old-mapping",
            str(old_mapping),
            "--matches",
            str(tmp_path / "missing.match"),
        ],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 2
    assert "Matches path does not exist" in stderr.getvalue()


def test_ph7_cli_011_update_carries_names_to_renamed_classes(tmp_path: Path) -> None:
    old_input = _write_dump(tmp_path / "v1.json", _DUMP)
    new_input = _write_dump(
        tmp_path / "v2.json",
        {
            "classes": [
                {
                    "name": "c",
                    "fields": [{"name": "d", "desc": "I"}],
                    "methods": [{"name": "e", "desc": "()V", "access": 1}],
                },
                {"name": "f", "fields": [{"name": "g", "desc": "I"}]},
            ]
        },
    )
    old_mapping = tmp_path / "v1.tiny"
    matches = tmp_path / "v1-v2.match"
    _write_file(
        matches,
        "c\tLa;\tLc;\n"
        "\tf\ta;;I\td;;I\n"
        "\tm\tb()V\te()V\n",
    )
    stdout = io.StringIO()
    stderr = io.StringIO()
    assert (
        run(
            [
                "generate",
                "--input",
                str(old_input),
                "--output",
                str(old_mapping),
                "--non-interactive",
            ],
            stdout=stdout,
            stderr=stderr,
        )
        == 0
    )
    output_path = tmp_path / "v2.tiny"

    exit_code = run(
        [
            "update",
            "--input",
            str(new_input),
            "--output",
            str(output_path),
            "--old-input",
            str(old_input),
            "--old-mapping",
            str(old_mapping),
            "--matches",
            str(matches),
            "--non-interactive",
        ],
        stdout=stdout,
        stderr=stderr,
    )

    assert exit_code == 0
    assert output_path.read_text(encoding="utf-8") == (
        "v1\tofficial\tintermediary\n"
        "CLASS\tc\tnet/minecraft/class_1\n"
        "FIELD\tc\tI\td\tfield_1\n"
        "METHOD\tc\t()V\te\tmethod_1\n"
        "CLASS\tf\tnet/minecraft/class_2\n"
        "FIELD\tf\tI\tg\tfield_3\n"
        "# INTERMEDIARY-COUNTER class 3\n"
        "# INTERMEDIARY-COUNTER field 4\n"
        "# INTERMEDIARY-COUNTER method 2\n"
    )


def test_ph7_cli_012_update_rerun_reuses_existing_output(tmp_path: Path) -> None:
    old_input = _write_dump(
        tmp_path / "v1.json",
        {
            "classes": [
                {
                    "name": "x",
                    "methods": [
                        {"name": "c", "desc": "()V", "access": 1},
                        {"name": "d", "desc": "()V", "access": 1},
                    ],
                }
            ]
        },
    )
    new_input = _write_dump(
        tmp_path / "v2.json",
        {
            "classes": [
                {
                    "name": "a",
                    "methods": [
                        {"name": "a", "desc": "()V", "access": 1, "related": [["a", "b()V"]]},
                        {"name": "b", "desc": "()V", "access": 1},
                    ],
                }
            ]
        },
    )
    old_mapping = tmp_path / "v1.tiny"
    _write_file(
        old_mapping,
        "v1\tofficial\tintermediary\n"
        "CLASS\tx\tnet/minecraft/class_1\n"
        "METHOD\tx\t()V\tc\tmethod_1\n"
        "METHOD\tx\t()V\td\tmethod_2\n",
    )
    matches = tmp_path / "v1-v2.match"
    _write_file(matches, "c\tLx;\tLa;\n\tm\tc()V\ta()V\n\tm\td()V\tb()V\n")
    output_path = tmp_path / "v2.tiny"
    argv = [
        "update",
        "--input",
        str(new_input),
        "--output",
        str(output_path),
        "--old-input",
        str(old_input),
        "--old-mapping",
        str(old_mapping),
        "--matches",
        str(matches),
    ]
    stdout = io.StringIO()
    stderr = io.StringIO()
    assert run(argv, stdout=stdout, stderr=stderr, stdin=io.StringIO("2\n")) == 0
    first = output_path.read_text(encoding="utf-8")

    exit_code = run([*argv, "--non-interactive"], stdout=stdout, stderr=stderr)

    assert exit_code == 0
    assert stderr.getvalue() == ""
    assert "METHOD\ta\t()V\tb\tmethod_2\n" in first
    assert output_path.read_text(encoding="utf-8") == first
