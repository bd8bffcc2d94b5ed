import pytest

from layerbuild.config import Configuration, load_configuration
from layerbuild.errors import ManifestError


def test_defaults(tmp_path):
    config = load_configuration(tmp_path)
    assert config.platform == "linux"
    assert config.generator == "cmake"
    assert config.is_development
    assert config.output_path == tmp_path.resolve() / ".build"
    assert config.merged_name == "linux.cmake.dev.release"
    assert config.solution_path == tmp_path.resolve() / ".build" / "linux.cmake.dev.release" / "build"
    assert config.shared_glue_path == config.solution_path / "generated" / "_shared"


def test_config_file_then_overrides(tmp_path):
    (tmp_path / ".layerbuild.toml").write_text(
        '[layerbuild]\nplatform = "windows"\ngenerator = "vs2022"\noutput_path = "out"\n'
        'library_paths = ["libs"]\n'
    )
    config = load_configuration(tmp_path, generator="cmake", configuration=None)
    assert config.platform == "windows"
    assert config.generator == "cmake"
    assert config.configuration == "release"
    assert config.output_path == tmp_path.resolve() / "out"
    assert config.library_paths == [tmp_path.resolve() / "libs"]


def test_pyproject_table_is_used_as_fallback(tmp_path):
    (tmp_path / "pyproject.toml").write_text('[tool.layerbuild]\nbuild = "shipment"\n')
    config = load_configuration(tmp_path)
    assert config.build == "shipment"
    assert not config.is_development


def test_layerbuild_toml_wins_over_pyproject(tmp_path):
    (tmp_path / "pyproject.toml").write_text('[tool.layerbuild]\nbuild = "shipment"\n')
    (tmp_path / ".layerbuild.toml").write_text('[layerbuild]\nconfiguration = "debug"\n')
    config = load_configuration(tmp_path)
    assert config.build == "dev"
    assert config.configuration == "debug"


def test_unknown_keys_and_values_are_rejected(tmp_path):
    (tmp_path / ".layerbuild.toml").write_text('[layerbuild]\ncolour = "blue"\n')
    with pytest.raises(ManifestError, match="colour"):
        load_configuration(tmp_path)

    with pytest.raises(ManifestError, match="Invalid platform"):
        Configuration(module_path=tmp_path, platform="amiga")


def test_broken_config_file(tmp_path):
    (tmp_path / ".layerbuild.toml").write_text("[layerbuild\n")
    with pytest.raises(ManifestError):
        load_configuration(tmp_path)


def test_worker_count_is_at_least_one(tmp_path):
    assert Configuration(module_path=tmp_path, workers=0).worker_count >= 1
    assert Configuration(module_path=tmp_path, workers=3).worker_count == 3


def test_library_mode(tmp_path):
    assert load_configuration(tmp_path).libs == "static"
    assert load_configuration(tmp_path, libs="shared").libs == "shared"
    with pytest.raises(ManifestError, match="Invalid libs"):
        Configuration(module_path=tmp_path, libs="dynamic")
