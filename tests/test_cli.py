import pytest

from contract_graph.cli import build_parser, main
from contract_graph.logging_utils import console


def test_parser_requires_a_command():
    """Running without a sub-command is a usage error."""
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_filter_types_are_split_on_commas():
    """``--types`` accepts a comma-separated list."""
    args = build_parser().parse_args(["filter", "g.mmd", "--types", "impure, inline,", "--out", "o.mmd"])
    assert args.types == ["impure", "inline"]


def test_languages_lists_adapters():
    """The languages table names every registered language."""
    with console.capture() as capture:
        assert main(["languages"]) == 0
    text = capture.get()
    assert "func" in text
    assert "noir" in text


def test_visualize_then_filter(tmp_path):
    """A rendered diagram can be filtered from disk."""
    source = tmp_path / "wallet.fc"
    source.write_text("() save() impure { commit(); } int main() { save(); return 0; } int idle() { return 1; }")
    diagram = tmp_path / "out" / "wallet.mmd"

    assert main(["visualize", str(source), "--out", str(diagram), "--direction", "LR"]) == 0
    text = diagram.read_text(encoding="utf-8")
    assert text.startswith("graph LR;\n")
    assert "main_regular --> save_impure" in text

    filtered = tmp_path / "filtered.mmd"
    assert main(["filter", str(diagram), "--types", "impure", "--out", str(filtered)]) == 0
    out = filtered.read_text(encoding="utf-8")
    assert "save_impure" in out
    assert "main_regular" not in out
    assert "idle_regular" not in out


def test_visualize_with_imports(tmp_path):
    """``--imports`` merges included files before parsing."""
    (tmp_path / "lib.fc").write_text("int helper() { return 1; }\n")
    main_file = tmp_path / "main.fc"
    main_file.write_text('#include "lib.fc";\nint main() { return helper(); }\n')
    out = tmp_path / "main.mmd"

    assert main(["visualize", str(main_file), "--imports", "--workspace", str(tmp_path), "--out", str(out)]) == 0
    assert "main_regular --> helper_regular" in out.read_text(encoding="utf-8")


def test_visualize_unknown_language_fails_cleanly(tmp_path):
    """An unknown language id is reported, not raised."""
    source = tmp_path / "x.fc"
    source.write_text("int a() { return 1; }")
    with console.capture() as capture:
        code = main(["visualize", str(source), "--language", "cobol", "--out", str(tmp_path / "x.mmd")])
    assert code == 1
    assert "Unsupported language" in capture.get()


def test_missing_input_file_fails_cleanly(tmp_path):
    """A missing diagram file is an error exit, not a traceback."""
    code = main(["filter", str(tmp_path / "none.mmd"), "--out", str(tmp_path / "o.mmd")])
    assert code == 1
