import pytest

import wtt
from wtt.app import main


def test_main_function_exists():
    """Test that the main function is callable."""
    assert callable(main)


def test_version(capsys):
    """Test that --version prints the package version."""
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])

    assert exc_info.value.code == 0
    assert wtt.__version__ in capsys.readouterr().out
