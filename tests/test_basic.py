"""Tests for the update_advisor package."""

import pytest


def test_package_import():
    """Test that the package can be imported."""
    import update_advisor
    assert update_advisor.__version__ == "0.1.0"


def test_cli_import():
    """Test that CLI module can be imported."""
    from update_advisor.cli import main
    assert callable(main)


def test_help_exits_zero(capsys):
    from update_advisor.cli import main

    with pytest.raises(SystemExit) as exc:
        main(["--help"])
    assert exc.value.code == 0
    assert "--conda-only" in capsys.readouterr().out


def test_mutually_exclusive_flags_exit_one():
    from update_advisor.cli import main

    with pytest.raises(SystemExit) as exc:
        main(["--verbose", "--summary"])
    assert exc.value.code == 1


def test_unknown_flag_exits_one():
    from update_advisor.cli import main

    with pytest.raises(SystemExit) as exc:
        main(["--bogus"])
    assert exc.value.code == 1
