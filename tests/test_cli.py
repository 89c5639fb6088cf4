from click.testing import CliRunner

import wingetupgrader.cli as cli_module


def _fake_upgrader(captured):
    class FakeUpgrader:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def run(self):
            return 0

    return FakeUpgrader


def test_cli_loads_config_and_applies_deploy_mode_override(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yml"
    config_file.write_text(
        "skip_list: ['Vendor.AppA']\n" "session:\n" "  app_name: Contoso\n",
        encoding="utf-8",
    )
    captured = {}
    monkeypatch.setattr(cli_module, "WingetUpgrader", _fake_upgrader(captured))

    result = CliRunner().invoke(
        cli_module.main,
        ["--config", str(config_file), "--deploy-mode", "Silent", "--direct-query"],
    )

    assert result.exit_code == 0
    config = captured["config"]
    assert config.skip_list == ("Vendor.AppA",)
    assert config.session.app_name == "Contoso"
    assert config.session.deploy_mode == "Silent"
    assert captured["direct_query"] is True
    assert captured["check_dependencies"] is True


def test_cli_uses_default_config_file_when_present(tmp_path, monkeypatch):
    (tmp_path / ".wingetupgrader.yml").write_text("upgrade_arguments: --silent\n", encoding="utf-8")
    captured = {}
    monkeypatch.setattr(cli_module, "WingetUpgrader", _fake_upgrader(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["--skip-dependency-check"])

    assert result.exit_code == 0
    assert captured["config"].upgrade_arguments == "--silent"
    assert captured["check_dependencies"] is False


def test_cli_survives_malformed_config(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yml"
    config_file.write_text("[not: a mapping", encoding="utf-8")
    captured = {}
    monkeypatch.setattr(cli_module, "WingetUpgrader", _fake_upgrader(captured))

    result = CliRunner().invoke(cli_module.main, ["--config", str(config_file)])

    assert result.exit_code == 0
    assert captured["config"] == cli_module.ConfigLoader().defaults()
