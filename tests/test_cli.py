from typer.testing import CliRunner

from cinemana_cli import __version__
from cinemana_cli.cli import app as app_module
from cinemana_cli.exceptions import NoIdentifiersError

runner = CliRunner()


def test_version() -> None:
    result = runner.invoke(app_module.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_download_without_identifiers_is_fatal(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(app_module, "CONFIG_FILE", tmp_path / "config.ini")
    result = runner.invoke(
        app_module.app,
        [
            "download",
            "--base-url",
            "https://catalog.example/api",
            "--no-cache",
            "--progress",
            "none",
            "-o",
            str(tmp_path / "out"),
        ],
    )
    assert isinstance(result.exception, NoIdentifiersError)


def test_init_writes_config(tmp_path, monkeypatch) -> None:
    config_file = tmp_path / "cfg" / "config.ini"
    monkeypatch.setattr(app_module, "CONFIG_FILE", config_file)
    result = runner.invoke(
        app_module.app, ["init", "--base-url", "https://catalog.example/api", "-w", "2"]
    )
    assert result.exit_code == 0
    text = config_file.read_text(encoding="utf-8")
    assert "base_url = https://catalog.example/api" in text
    assert "max_workers = 2" in text
