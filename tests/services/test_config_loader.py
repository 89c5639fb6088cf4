import dataclasses

from wingetupgrader.errors import ErrorKind
from wingetupgrader.services.config_loader import ConfigLoader, parse_exit_code


class DummyLogger:
    def __init__(self):
        self.warnings = []

    def info(self, *_args, **_kwargs):
        return None

    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, message, *args, **_kwargs):
        self.warnings.append(message % args if args else message)


def test_config_loader_returns_defaults_when_file_missing(tmp_path):
    loader = ConfigLoader(logger=DummyLogger())

    result = loader.load(str(tmp_path / "missing.yml"))

    assert result.config == loader.defaults()
    assert result.error_kind is None


def test_config_loader_replaces_only_supplied_keys(tmp_path):
    config_file = tmp_path / ".wingetupgrader.yml"
    config_file.write_text(
        "skip_list: ['Vendor.AppA']\n"
        "session:\n"
        "  app_name: Contoso Updates\n"
        "ui:\n"
        "  width: 80\n",
        encoding="utf-8",
    )
    loader = ConfigLoader(logger=DummyLogger())
    defaults = loader.defaults()

    config = loader.load(str(config_file)).config

    expected = dataclasses.replace(
        defaults,
        skip_list=("Vendor.AppA",),
        session=dataclasses.replace(defaults.session, app_name="Contoso Updates"),
        ui=dataclasses.replace(defaults.ui, width=80),
    )
    assert config == expected


def test_config_loader_replaces_lists_wholesale_and_reads_json(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(
        '{"acceptable_exit_codes": [0, "0x8A150006", 0], "upgrade_arguments": "--silent"}',
        encoding="utf-8",
    )
    loader = ConfigLoader(logger=DummyLogger())

    config = loader.load(str(config_file)).config

    assert config.acceptable_exit_codes == (0, -1978335226)
    assert config.upgrade_arguments == "--silent"
    assert config.detection_marker == loader.defaults().detection_marker


def test_config_loader_falls_back_to_defaults_on_syntax_error(tmp_path):
    config_file = tmp_path / ".wingetupgrader.yml"
    config_file.write_text("skip_list: [unclosed\n  : : :\n", encoding="utf-8")
    logger = DummyLogger()
    loader = ConfigLoader(logger=logger)

    first = loader.load(str(config_file))
    second = loader.load(str(config_file))

    assert first.config == loader.defaults()
    assert second.config == first.config
    assert first.error_kind == ErrorKind.CONFIG_PARSE
    assert any("Falling back" in warning for warning in logger.warnings)


def test_config_loader_falls_back_when_section_has_wrong_type(tmp_path):
    config_file = tmp_path / ".wingetupgrader.yml"
    config_file.write_text("skip_list: Vendor.AppA\nupgrade_arguments: --force\n", encoding="utf-8")
    loader = ConfigLoader(logger=DummyLogger())

    result = loader.load(str(config_file))

    assert result.error_kind == ErrorKind.CONFIG_PARSE
    assert result.config == loader.defaults()


def test_config_loader_rejects_quoted_boolean(tmp_path):
    config_file = tmp_path / ".wingetupgrader.yml"
    config_file.write_text('session:\n  show_notifications: "false"\n', encoding="utf-8")
    loader = ConfigLoader(logger=DummyLogger())

    result = loader.load(str(config_file))

    assert result.error_kind == ErrorKind.CONFIG_PARSE
    assert result.config == loader.defaults()


def test_config_loader_rejects_null_detection_marker(tmp_path):
    config_file = tmp_path / ".wingetupgrader.yml"
    config_file.write_text("detection_marker: null\n", encoding="utf-8")
    loader = ConfigLoader(logger=DummyLogger())

    result = loader.load(str(config_file))

    assert result.error_kind == ErrorKind.CONFIG_PARSE
    assert result.config == loader.defaults()
    assert result.config.detection_marker != "None"


def test_config_loader_ignores_unknown_keys_with_warning(tmp_path):
    config_file = tmp_path / ".wingetupgrader.yml"
    config_file.write_text("unknown_key: true\nskip_list: []\n", encoding="utf-8")
    logger = DummyLogger()
    loader = ConfigLoader(logger=logger)

    result = loader.load(str(config_file))

    assert result.error_kind is None
    assert result.warnings == ("Ignoring unknown configuration key: unknown_key",)
    assert result.config == loader.defaults()


def test_parse_exit_code_normalizes_to_signed_32_bit():
    assert parse_exit_code(2316632070) == -1978335226
    assert parse_exit_code("-1979189490") == -1979189490
    assert parse_exit_code(0) == 0
