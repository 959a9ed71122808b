"""
Package consistency tests.

Verify that the public symbols re-exported from the package namespaces are
the same objects as those defined in the submodules.
"""
import pytest


class TestPackageImports:
    """Verify all expected symbols are importable from package."""

    def test_top_level_imports(self):
        import dsegments
        from dsegments.core.probabilities import ProbabilityModel
        from dsegments.inference.scanner import find_dsegments
        assert dsegments.ProbabilityModel is ProbabilityModel
        assert dsegments.find_dsegments is find_dsegments
        assert isinstance(dsegments.__version__, str)

    def test_core_imports(self):
        from dsegments.core import (
            ProbabilityModel,
            ConfigurationError,
            load_model,
            save_model,
            read_counts,
            CountsFormatError,
        )
        assert callable(load_model)
        assert callable(save_model)
        assert callable(read_counts)
        assert issubclass(ConfigurationError, ValueError)
        assert issubclass(CountsFormatError, ValueError)
        assert ProbabilityModel is not None

    def test_inference_imports(self):
        import dsegments.inference as inference
        for name in inference.__all__:
            assert getattr(inference, name) is not None

    def test_cli_modules_have_main(self):
        from dsegments.cli import find, utils
        assert callable(find.main)
        assert callable(utils.main)


class TestVersion:
    def test_version_flag(self, capsys):
        from dsegments import __version__
        from dsegments.cli import find
        with pytest.raises(SystemExit) as exc:
            find.parse_args(['--version'])
        assert exc.value.code == 0
        assert __version__ in capsys.readouterr().out
