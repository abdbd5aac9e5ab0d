"""
Tests for the command line entry point
"""
import pytest

from addon_toolchain.cli import build_parser, main, settings_from_args
from addon_toolchain.core import executor as executor_module


class TestCli:
    """Test suite for addon-toolchain"""

    def test_parser_options(self, tmp_path):
        args = build_parser().parse_args([
            "package",
            "--mod-name", "Cows",
            "--source-dir", str(tmp_path / "src"),
            "--data-dir", str(tmp_path / "mojang"),
            "--plugin", "a.b:C",
            "--plugin", "d.e:F",
        ])
        settings = settings_from_args(args)

        assert args.operation == "package"
        assert args.mod_name == "Cows"
        assert settings.source_dir == tmp_path / "src"
        assert settings.data_dir_override == tmp_path / "mojang"
        assert settings.plugins == ["a.b:C", "d.e:F"]

    def test_rejects_unknown_operation(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["deploy"])

    def test_build_succeeds(self, tmp_path, make_pack):
        make_pack(tmp_path / "packs" / "A", files={"a.txt": "a"})

        code = main([
            "build",
            "--source-dir", str(tmp_path / "packs"),
            "--bundle-dir", str(tmp_path / "out"),
            "--package-dir", str(tmp_path / "pkg"),
        ])

        assert code == 0
        assert (tmp_path / "out" / "A" / "a.txt").exists()

    def test_missing_data_dir_exits_nonzero(self, tmp_path, make_pack):
        make_pack(tmp_path / "packs" / "A")

        code = main([
            "install",
            "--source-dir", str(tmp_path / "packs"),
            "--bundle-dir", str(tmp_path / "out"),
            "--data-dir", str(tmp_path / "missing"),
        ])

        assert code == 1
        assert not (tmp_path / "out").exists()

    def test_invalid_poll_interval_exits_nonzero(self, tmp_path):
        """Test that settings validation errors are reported, not raised"""
        code = main(["build", "--source-dir", str(tmp_path), "--poll-interval", "0"])

        assert code == 1

    def test_clean_failure_exits_nonzero(self, tmp_path, monkeypatch):
        def locked(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr(executor_module, "remove_tree", locked)

        code = main(["clean", "--bundle-dir", str(tmp_path / "out"), "--package-dir", str(tmp_path / "pkg")])

        assert code == 1

    def test_bad_plugin_exits_nonzero(self, tmp_path):
        code = main(["build", "--source-dir", str(tmp_path), "--plugin", "no_such_module_xyz:Plugin"])

        assert code == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
