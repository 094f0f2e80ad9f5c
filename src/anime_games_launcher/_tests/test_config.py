from unittest.mock import patch

import pytest

from anime_games_launcher import config


def test_config_file(tmp_path):
    TMP_DEFAULT_CONFIG_PATH = tmp_path / ".anime-games-launcher"
    TMP_DEFAULT_CONFIG_FILE_PATH = TMP_DEFAULT_CONFIG_PATH / "launcher.ini"

    assert not TMP_DEFAULT_CONFIG_PATH.exists()
    assert not TMP_DEFAULT_CONFIG_FILE_PATH.exists()

    with (
        patch.object(config, "DEFAULT_CONFIG_PATH", TMP_DEFAULT_CONFIG_PATH),
        patch.object(
            config, "DEFAULT_CONFIG_FILE_PATH", TMP_DEFAULT_CONFIG_FILE_PATH
        ),
    ):
        initial_config = config.get_configuration()
        assert TMP_DEFAULT_CONFIG_PATH.exists()
        assert TMP_DEFAULT_CONFIG_FILE_PATH.exists()
        assert config.poll_interval(initial_config) == 0.5
        assert config.install_corefonts(initial_config)
        assert (
            config.prefix_path(initial_config)
            == TMP_DEFAULT_CONFIG_PATH / "prefix"
        )
        assert (
            config.components_folder(initial_config)
            == TMP_DEFAULT_CONFIG_PATH / "components"
        )

        TMP_DEFAULT_CONFIG_FILE_PATH.write_text(
            "[tasks]\npoll_interval = 0.25\n\n"
            "[prefix]\ninstall_corefonts = no\n"
        )
        second_config = config.get_configuration()
        assert config.poll_interval(second_config) == 0.25
        assert not config.install_corefonts(second_config)
        # keys missing from the file keep their defaults
        assert (
            config.prefix_path(second_config)
            == TMP_DEFAULT_CONFIG_PATH / "prefix"
        )


def test_invalid_poll_interval(tmp_path):
    with (
        patch.object(config, "DEFAULT_CONFIG_PATH", tmp_path),
        patch.object(
            config, "DEFAULT_CONFIG_FILE_PATH", tmp_path / "launcher.ini"
        ),
    ):
        launcher_config = config.get_configuration()

    launcher_config.set("tasks", "poll_interval", "0")
    with pytest.raises(ValueError, match="poll_interval must be positive"):
        config.poll_interval(launcher_config)
